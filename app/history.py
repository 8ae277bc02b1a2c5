"""
History tape rows and the fixed-capacity insertion policy.
"""
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Tuple


PLACEHOLDER_TEXT = " "


class RowStyle(str, Enum):
    """How a tape row is rendered."""
    NORMAL = "normal"
    RESULT_HIGHLIGHT = "resultHighlight"
    BLANK = "blank"


def _new_row_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class HistoryRow:
    """One row of the calculator tape."""
    operator_symbol: str
    text: str
    style: RowStyle = RowStyle.NORMAL
    id: str = field(default_factory=_new_row_id)

    @property
    def is_blank(self) -> bool:
        return self.style == RowStyle.BLANK

    @property
    def is_placeholder(self) -> bool:
        """Padding row from tape initialisation, consumed as real rows arrive."""
        return self.is_blank and self.text == PLACEHOLDER_TEXT


History = Tuple[HistoryRow, ...]


def placeholder_row() -> HistoryRow:
    return HistoryRow(operator_symbol="", text=PLACEHOLDER_TEXT, style=RowStyle.BLANK)


def spacer_row() -> HistoryRow:
    return HistoryRow(operator_symbol="", text="", style=RowStyle.BLANK)


def blank_tape(capacity: int) -> History:
    """Create a tape holding only placeholder rows."""
    return tuple(placeholder_row() for _ in range(max(capacity, 0)))


def add_row(history: History, row: HistoryRow) -> History:
    """
    Insert a row at the end of the tape.

    While the oldest row is still a placeholder the tape keeps its length:
    every row shifts left by one and the new row takes the last slot. Once
    the padding is used up the tape grows by one row per insertion.

    Args:
        history: Current tape
        row: Row to insert

    Returns:
        The new tape
    """
    if history and history[0].is_placeholder:
        return history[1:] + (row,)
    return history + (row,)


def add_rows(history: History, *rows: HistoryRow) -> History:
    for row in rows:
        history = add_row(history, row)
    return history


def replace_last_operator(history: History, operator_symbol: str) -> History:
    """
    Change the operator symbol of the most recent non-blank row.

    The row keeps its id and the tape keeps its length. A tape with no
    non-blank rows is returned unchanged.
    """
    for index in range(len(history) - 1, -1, -1):
        if not history[index].is_blank:
            updated = replace(history[index], operator_symbol=operator_symbol)
            return history[:index] + (updated,) + history[index + 1:]
    return history
