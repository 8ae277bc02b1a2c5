"""
Calculator session state machine.

The state is an immutable SessionState and every user action is a small
action object. transition() is a pure function from (state, action) to the
next state; CalculatorSession owns the current state, serialises dispatch
and notifies listeners after every action.
"""
import logging
import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, List, Optional, Union

from .config import CELL_HEIGHT, MIN_TAPE_HEIGHT, INITIAL_TAPE_HEIGHT, PREFERENCES_FILE
from .engine import EQUALS, OPERATORS, apply, format_decimal, parse_decimal
from .history import (
    History, HistoryRow, RowStyle,
    add_row, add_rows, blank_tape, replace_last_operator, spacer_row,
)
from .preferences import InMemoryPreferenceStore, JsonPreferenceStore, SHOW_AC_TOOLTIP_KEY

logger = logging.getLogger(__name__)

DIGIT_KEYS = frozenset(["0", "1", "2", "3", "4", "5", "6", "7", "8", "9", ".", "00"])


@dataclass(frozen=True)
class SessionState:
    """Everything the display needs after an action."""
    current_input: str = "0"
    display_input: str = "0"
    display_operator: str = ""
    is_new_input: bool = True
    previous_operand: Optional[Decimal] = None
    pending_operator: Optional[str] = None
    last_result: Optional[Decimal] = None
    is_equals_just_pressed: bool = False
    history: History = ()
    capacity: int = 0  # rows required by the visible tape area


@dataclass(frozen=True)
class AddDigit:
    digit: str


@dataclass(frozen=True)
class ToggleSign:
    pass


@dataclass(frozen=True)
class SetOperator:
    operator: str


@dataclass(frozen=True)
class Calculate:
    pass


@dataclass(frozen=True)
class ClearInput:
    pass


@dataclass(frozen=True)
class AllClear:
    pass


@dataclass(frozen=True)
class Resize:
    capacity: int


Action = Union[AddDigit, ToggleSign, SetOperator, Calculate, ClearInput, AllClear, Resize]
StateListener = Callable[[SessionState], None]


def initial_state(capacity: int = 0) -> SessionState:
    """Fresh state with a tape of placeholder rows."""
    capacity = max(capacity, 0)
    return SessionState(history=blank_tape(capacity), capacity=capacity)


def rows_for_height(
    height: float,
    cell_height: float = CELL_HEIGHT,
    min_height: float = MIN_TAPE_HEIGHT
) -> int:
    """
    Number of tape rows needed to fill a visible area.

    Two extra rows keep the tape scrollable past the visible edge.

    Args:
        height: Visible tape height
        cell_height: Height of a single row
        min_height: Floor applied to the visible height

    Returns:
        Required row count
    """
    return int(max(height, min_height) // cell_height) + 2


def _with_input(state: SessionState, text: str, **changes) -> SessionState:
    # The display mirrors the buffer whenever the buffer changes
    return replace(state, current_input=text, display_input=text or "0", **changes)


def _start_fresh_number(state: SessionState) -> SessionState:
    return _with_input(
        state, "",
        display_operator="",
        pending_operator=None,
        previous_operand=None,
        last_result=None,
        is_equals_just_pressed=False,
        is_new_input=True,
    )


def add_digit(state: SessionState, digit: str) -> SessionState:
    if digit not in DIGIT_KEYS:
        return state

    if state.is_equals_just_pressed:
        state = _start_fresh_number(state)
    if state.is_new_input:
        state = _with_input(state, "", is_new_input=False)

    buffer = state.current_input
    if digit == ".":
        if "." in buffer:
            text = buffer
        else:
            text = buffer + "." if buffer else "0."
    elif digit == "00":
        text = "0" if buffer in ("0", "") else buffer + "00"
    else:
        text = digit if buffer == "0" else buffer + digit

    return _with_input(state, text)


def toggle_sign(state: SessionState) -> SessionState:
    buffer = state.current_input
    if buffer == "0":
        return state
    if buffer.startswith("-"):
        return _with_input(state, buffer[1:])
    return _with_input(state, "-" + buffer)


def set_operator(state: SessionState, op: str) -> SessionState:
    """
    Select the operator to apply to the next operand.

    Pressing an operator right after "=" carries the result into a new
    equation. Pressing one again before typing a digit only swaps the
    operator. Otherwise the typed operand is either folded into the running
    value or becomes the first operand.
    """
    if op not in OPERATORS:
        return state
    # Nothing to operate on yet
    if state.previous_operand is None and state.current_input == "0":
        return state

    if state.is_equals_just_pressed and state.last_result is not None:
        carried = state.last_result
        row = HistoryRow("", format_decimal(carried), RowStyle.RESULT_HIGHLIGHT)
        state = replace(
            state,
            previous_operand=carried,
            last_result=None,
            history=add_row(state.history, row),
        )
    elif state.is_new_input and state.pending_operator is not None:
        return replace(
            state,
            pending_operator=op,
            display_operator=op,
            history=replace_last_operator(state.history, op),
        )
    else:
        current = parse_decimal(state.current_input)
        if (state.previous_operand is not None
                and state.pending_operator is not None
                and current is not None
                and state.current_input != "0"):
            result = apply(state.pending_operator, state.previous_operand, current)
            row = HistoryRow(state.pending_operator, state.current_input)
            state = replace(
                state,
                previous_operand=result,
                display_input=format_decimal(result),
                history=add_row(state.history, row),
            )
        elif state.previous_operand is None:
            if current is None:
                return state
            row = HistoryRow("", state.current_input)
            state = replace(
                state,
                previous_operand=current,
                history=add_row(state.history, row),
            )

    return replace(
        state,
        pending_operator=op,
        display_operator=op,
        is_new_input=True,
        is_equals_just_pressed=False,
    )


def calculate(state: SessionState) -> SessionState:
    """
    Apply the pending operator to the running value and the typed operand.

    Ignored unless an operator is pending and an operand has been typed
    since it was chosen.
    """
    op = state.pending_operator
    previous = state.previous_operand
    current = None if state.is_new_input else parse_decimal(state.current_input)
    if op is None or previous is None or current is None:
        return state

    result = apply(op, previous, current)
    result_text = format_decimal(result)

    history = add_rows(
        state.history,
        HistoryRow(op, state.current_input),
        HistoryRow(EQUALS, result_text, RowStyle.RESULT_HIGHLIGHT),
        spacer_row(),
    )
    return replace(
        state,
        history=history,
        display_operator=EQUALS,
        display_input=result_text,
        last_result=result,
        is_equals_just_pressed=True,
        is_new_input=True,
        previous_operand=None,
        pending_operator=None,
    )


def clear_current_input(state: SessionState) -> SessionState:
    if state.display_operator == EQUALS:
        # Leaving a finished equation: reset everything but the tape
        return _with_input(
            state, "0",
            display_operator="",
            pending_operator=None,
            previous_operand=None,
            last_result=None,
            is_equals_just_pressed=False,
            is_new_input=True,
        )
    return _with_input(state, "0", is_new_input=True)


def all_clear(state: SessionState, capacity: Optional[int] = None) -> SessionState:
    return initial_state(state.capacity if capacity is None else capacity)


def resize(state: SessionState, capacity: int) -> SessionState:
    """Re-pad the tape when the required row count changes."""
    capacity = max(capacity, 0)
    if capacity != len(state.history):
        return all_clear(state, capacity)
    if capacity == state.capacity:
        return state
    return replace(state, capacity=capacity)


def transition(state: SessionState, action: Action) -> SessionState:
    """Compute the state that follows an action."""
    if isinstance(action, AddDigit):
        return add_digit(state, action.digit)
    if isinstance(action, ToggleSign):
        return toggle_sign(state)
    if isinstance(action, SetOperator):
        return set_operator(state, action.operator)
    if isinstance(action, Calculate):
        return calculate(state)
    if isinstance(action, ClearInput):
        return clear_current_input(state)
    if isinstance(action, AllClear):
        return all_clear(state)
    if isinstance(action, Resize):
        return resize(state, action.capacity)
    raise TypeError(f"Unknown action: {action!r}")


class CalculatorSession:
    """Owns one calculator's state and tells listeners about every change."""

    def __init__(self, capacity: int = 0, preferences=None):
        """
        Initialize the session.

        Args:
            capacity: Initial number of tape rows
            preferences: Store for the tooltip flag; defaults to in-memory
        """
        self._state = initial_state(capacity)
        self._preferences = preferences if preferences is not None else InMemoryPreferenceStore()
        self._listeners: List[StateListener] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def should_show_tooltip_hint(self) -> bool:
        return self._preferences.get_bool(SHOW_AC_TOOLTIP_KEY, True)

    def disable_tooltip_hint(self) -> None:
        self._preferences.set_bool(SHOW_AC_TOOLTIP_KEY, False)

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def dispatch(self, action: Action) -> SessionState:
        with self._lock:
            previous = self._state
            self._state = transition(previous, action)
            state = self._state

        if state is previous:
            logger.debug(f"Ignored {action}")
        else:
            logger.debug(
                f"Applied {action}: display={state.display_operator}{state.display_input} "
                f"rows={len(state.history)}"
            )

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"State listener failed after {action}")
        return state

    def add_digit(self, digit: str) -> SessionState:
        return self.dispatch(AddDigit(digit))

    def toggle_sign(self) -> SessionState:
        return self.dispatch(ToggleSign())

    def set_operator(self, op: str) -> SessionState:
        return self.dispatch(SetOperator(op))

    def calculate(self) -> SessionState:
        return self.dispatch(Calculate())

    def clear_current_input(self) -> SessionState:
        return self.dispatch(ClearInput())

    def all_clear(self) -> SessionState:
        state = self.dispatch(AllClear())
        logger.info(f"All clear, tape reset to {state.capacity} rows")
        return state

    def resize(self, capacity: int) -> SessionState:
        previous = self._state
        state = self.dispatch(Resize(capacity))
        if state.history is not previous.history:
            logger.info(
                f"Tape capacity changed from {len(previous.history)} to {state.capacity} rows, "
                "calculator reset"
            )
        return state


# Global session instance
_session: Optional[CalculatorSession] = None


def get_session() -> CalculatorSession:
    """Get or create the global calculator session."""
    global _session
    if _session is None:
        _session = CalculatorSession(
            capacity=rows_for_height(INITIAL_TAPE_HEIGHT),
            preferences=JsonPreferenceStore(PREFERENCES_FILE),
        )
    return _session
