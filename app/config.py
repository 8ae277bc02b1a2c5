"""
Configuration constants for the Tape Calculator service.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Arithmetic configuration
DECIMAL_PRECISION = int(os.getenv("DECIMAL_PRECISION", "38"))
MAX_FRACTION_DIGITS = int(os.getenv("MAX_FRACTION_DIGITS", "10"))

# Display locale
GROUP_SEPARATOR = os.getenv("GROUP_SEPARATOR", ",")
DECIMAL_SEPARATOR = os.getenv("DECIMAL_SEPARATOR", ".")
ERROR_TEXT = "Error"

# Tape geometry (points)
CELL_HEIGHT = float(os.getenv("CELL_HEIGHT", "41"))
MIN_TAPE_HEIGHT = float(os.getenv("MIN_TAPE_HEIGHT", "100"))
INITIAL_TAPE_HEIGHT = float(os.getenv("INITIAL_TAPE_HEIGHT", "400"))
RESIZE_DEBOUNCE_MS = int(os.getenv("RESIZE_DEBOUNCE_MS", "100"))

# Preferences
PREFERENCES_FILE = os.getenv("PREFERENCES_FILE", "./preferences.json")
TOOLTIP_TEXT = "Long press for AC"

# Guardrails
MAX_TAPE_HEIGHT = float(os.getenv("MAX_TAPE_HEIGHT", "10000"))
RATE_LIMIT = os.getenv("RATE_LIMIT", "300/minute")

# Logging
LOG_FILE = os.getenv("LOG_FILE", "calculator.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))
