"""
FastAPI entrypoint for the Tape Calculator.
"""
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Callable, List, Literal, Optional
from pydantic import BaseModel, Field
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import (
    RESIZE_DEBOUNCE_MS, MAX_TAPE_HEIGHT, RATE_LIMIT, TOOLTIP_TEXT,
    LOG_FILE, LOG_MAX_BYTES, LOG_BACKUP_COUNT,
)
from .session import SessionState, get_session, rows_for_height
from .debounce import Debouncer

# Attributes present on every LogRecord, excluded from the JSON extras dict
_LOG_RECORD_BUILTIN_ATTRS = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'message', 'module',
    'msecs', 'msg', 'name', 'pathname', 'process', 'processName',
    'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName',
}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON for machine-readable file output."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        # Merge any extra={} fields passed by the caller
        for key, val in record.__dict__.items():
            if key not in _LOG_RECORD_BUILTIN_ATTRS and key not in entry:
                entry[key] = val
        return json.dumps(entry, default=str)


# Console handler, human-readable
_console_handler = logging.StreamHandler()
_console_handler.setFormatter(
    logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
)

# File handler, JSON, rotated at LOG_MAX_BYTES
_file_handler = RotatingFileHandler(
    LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
)
_file_handler.setFormatter(JSONFormatter())

logging.basicConfig(level=logging.INFO, handlers=[_console_handler, _file_handler])
logger = logging.getLogger(__name__)


def _apply_resize(height: float) -> None:
    """Apply a settled tape height to the session."""
    rows = rows_for_height(height)
    state = get_session().resize(rows)
    logger.info(
        f"Resize settled at height {height} -> {rows} rows",
        extra={"height": height, "rows": rows, "history_rows": len(state.history)},
    )


# Collapses bursts of resize events into the last one
resize_debouncer = Debouncer(RESIZE_DEBOUNCE_MS / 1000, _apply_resize)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    session = get_session()
    logger.info(
        f"Starting Tape Calculator with {session.state.capacity} tape rows"
    )

    yield

    # Shutdown
    if resize_debouncer.pending:
        logger.info("Dropping unsettled resize on shutdown")
    resize_debouncer.cancel()


# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# Initialize FastAPI app
app = FastAPI(
    title="Tape Calculator",
    description="Desk calculator with a scrolling history tape",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every HTTP request with method, path, status code, and duration."""
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class DigitRequest(BaseModel):
    """Request model for the digit key."""
    digit: Literal["0", "1", "2", "3", "4", "5", "6", "7", "8", "9", ".", "00"] = Field(
        ..., description="Key pressed on the number pad"
    )


class OperatorRequest(BaseModel):
    """Request model for an operator key."""
    operator: Literal["+", "-", "×", "÷"] = Field(..., description="Operator to apply next")


class ResizeRequest(BaseModel):
    """Request model for a change of the visible tape area."""
    height: float = Field(..., ge=0, le=MAX_TAPE_HEIGHT, description="Visible tape height in points")


class HistoryRowModel(BaseModel):
    """One tape row."""
    id: str
    operator_symbol: str
    text: str
    style: str


class StateResponse(BaseModel):
    """What the display shows after an action."""
    display_input: str
    display_operator: str
    history: List[HistoryRowModel]
    capacity: int
    show_tooltip_hint: bool


class ClearResponse(StateResponse):
    """Response model for the C key."""
    tooltip: Optional[str] = None


class ResizeResponse(StateResponse):
    """Response model for resize; the new size applies once resizing settles."""
    pending: bool
    requested_rows: int


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    history_rows: int
    capacity: int


def _state_fields(state: SessionState) -> dict:
    return {
        "display_input": state.display_input,
        "display_operator": state.display_operator,
        "history": [
            HistoryRowModel(
                id=row.id,
                operator_symbol=row.operator_symbol,
                text=row.text,
                style=row.style.value,
            )
            for row in state.history
        ],
        "capacity": state.capacity,
        "show_tooltip_hint": get_session().should_show_tooltip_hint,
    }


def _run_action(action: str, operation: Callable[[], SessionState]) -> SessionState:
    """Run one calculator action, logging it under a request id."""
    request_id = uuid.uuid4().hex[:8]
    try:
        state = operation()
    except Exception as e:
        logger.exception(f"[{request_id}] {action} failed",
                         extra={"request_id": request_id, "action": action})
        raise HTTPException(status_code=500, detail=f"{action} failed: {e}")

    logger.info(
        f"[{request_id}] {action} -> {state.display_operator}{state.display_input}",
        extra={
            "request_id": request_id,
            "action": action,
            "history_rows": len(state.history),
        },
    )
    return state


# Endpoints
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.
    """
    state = get_session().state
    return HealthResponse(
        status="healthy",
        history_rows=len(state.history),
        capacity=state.capacity
    )


@app.get("/state", response_model=StateResponse)
async def state_endpoint():
    """
    Current display and tape.
    """
    return StateResponse(**_state_fields(get_session().state))


@app.post("/digit", response_model=StateResponse)
@limiter.limit(RATE_LIMIT)
async def digit_endpoint(request: Request, body: DigitRequest):
    """
    Press a number key, "." or "00".
    """
    state = _run_action(f"digit {body.digit}", lambda: get_session().add_digit(body.digit))
    return StateResponse(**_state_fields(state))


@app.post("/sign", response_model=StateResponse)
@limiter.limit(RATE_LIMIT)
async def sign_endpoint(request: Request):
    """
    Toggle the sign of the number being typed.
    """
    state = _run_action("toggle sign", lambda: get_session().toggle_sign())
    return StateResponse(**_state_fields(state))


@app.post("/operator", response_model=StateResponse)
@limiter.limit(RATE_LIMIT)
async def operator_endpoint(request: Request, body: OperatorRequest):
    """
    Press an operator key.

    Pressing a second operator before typing a digit replaces the first.
    """
    state = _run_action(f"operator {body.operator}", lambda: get_session().set_operator(body.operator))
    return StateResponse(**_state_fields(state))


@app.post("/equals", response_model=StateResponse)
@limiter.limit(RATE_LIMIT)
async def equals_endpoint(request: Request):
    """
    Press "=".
    """
    state = _run_action("equals", lambda: get_session().calculate())
    return StateResponse(**_state_fields(state))


@app.post("/clear", response_model=ClearResponse)
@limiter.limit(RATE_LIMIT)
async def clear_endpoint(request: Request):
    """
    Press "C".

    While the tooltip hint is enabled the response carries the hint text
    once and the hint is then switched off for good.
    """
    session = get_session()
    state = _run_action("clear", session.clear_current_input)

    tooltip = None
    if session.should_show_tooltip_hint:
        tooltip = TOOLTIP_TEXT
        session.disable_tooltip_hint()

    return ClearResponse(tooltip=tooltip, **_state_fields(state))


@app.post("/all-clear", response_model=StateResponse)
@limiter.limit(RATE_LIMIT)
async def all_clear_endpoint(request: Request):
    """
    Long-press "AC": reset the calculator and the tape.
    """
    state = _run_action("all clear", lambda: get_session().all_clear())
    return StateResponse(**_state_fields(state))


@app.post("/resize", response_model=ResizeResponse)
@limiter.limit(RATE_LIMIT)
async def resize_endpoint(request: Request, body: ResizeRequest):
    """
    Report a new visible tape height.

    Heights are debounced; only the last one reported within the debounce
    window is applied.
    """
    resize_debouncer.submit(body.height)
    return ResizeResponse(
        pending=True,
        requested_rows=rows_for_height(body.height),
        **_state_fields(get_session().state)
    )


@app.post("/tooltip/dismiss", response_model=StateResponse)
async def dismiss_tooltip_endpoint():
    """
    Turn off the "long press for AC" hint.
    """
    session = get_session()
    session.disable_tooltip_hint()
    logger.info("AC tooltip hint disabled")
    return StateResponse(**_state_fields(session.state))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
