"""
Pytest configuration and fixtures.
"""
import pytest
import sys
import os

# Add the parent directory to path so we can import the app
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.preferences import InMemoryPreferenceStore  # noqa: E402
from app.session import CalculatorSession  # noqa: E402


@pytest.fixture
def session():
    """A calculator session with a five-row tape and throwaway preferences."""
    return CalculatorSession(capacity=5, preferences=InMemoryPreferenceStore())


@pytest.fixture
def press():
    """Drive a session with a space-separated key sequence."""
    def _press(session, keys):
        for key in keys.split():
            if key == "=":
                session.calculate()
            elif key in ("+", "-", "×", "÷"):
                session.set_operator(key)
            elif key == "C":
                session.clear_current_input()
            elif key == "AC":
                session.all_clear()
            elif key == "±":
                session.toggle_sign()
            else:
                session.add_digit(key)
        return session.state
    return _press
