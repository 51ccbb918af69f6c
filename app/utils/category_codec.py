"""
Encoding of week number and lifecycle state into the ``category`` column.

Stored rows use ``weekly_<N>_log_<state>`` or ``weekly_<N>_log_<state>_<detail>``
(rejections carry the rejection counter as detail, e.g. ``weekly_3_log_rejected_2``).
Anything else in the column (``draft``, ``daily task``, free text) is a plain
daily draft and decodes to ``None``.
"""
import re
from dataclasses import dataclass
from typing import Any, Optional

from app.exceptions import InvalidWeek

COMPILE = "compile"
SUBMITTED = "submitted"
APPROVED = "approved"
REJECTED = "rejected"

STATES = (COMPILE, SUBMITTED, APPROVED, REJECTED)

DRAFT_CATEGORY = "draft"

_CATEGORY_RE = re.compile(r"weekly_([1-9]\d*)_log_(compile|submitted|approved|rejected)(?:_(\w+))?", re.ASCII)
_DETAIL_RE = re.compile(r"\w+", re.ASCII)

# LIKE patterns for store-side filtering
SUBMITTED_PATTERN = "weekly_%_log_submitted"
TAGGED_PATTERN = "weekly_%_log_%"


@dataclass(frozen=True)
class Tag:
    week: int
    state: str
    detail: Optional[str] = None


def parse_week(value: Any) -> int:
    """Turn user input (int or digit string) into a positive week number."""
    if isinstance(value, bool):
        raise InvalidWeek(f"Invalid week number: {value!r}")
    if isinstance(value, int):
        week = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        week = int(value.strip())
    else:
        raise InvalidWeek(f"Invalid week number: {value!r}")
    if week <= 0:
        raise InvalidWeek(f"Week number must be positive, got {week}")
    return week


def encode(week: int, state: str, detail: Optional[str] = None) -> str:
    if isinstance(week, bool) or not isinstance(week, int) or week <= 0:
        raise InvalidWeek(f"Week number must be a positive integer, got {week!r}")
    if state not in STATES:
        raise ValueError(f"Unknown logbook state: {state!r}")

    category = f"weekly_{week}_log_{state}"
    if detail is not None:
        detail = str(detail)
        if not _DETAIL_RE.fullmatch(detail):
            raise ValueError(f"Category detail must be a single word, got {detail!r}")
        category = f"{category}_{detail}"
    return category


def decode(category: Optional[str]) -> Optional[Tag]:
    if not category:
        return None
    match = _CATEGORY_RE.fullmatch(category)
    if not match:
        return None
    week_text, state, detail = match.groups()
    return Tag(week=int(week_text), state=state, detail=detail)


def week_pattern(week: int) -> str:
    """LIKE pattern matching every tagged category of one week."""
    return f"weekly_{parse_week(week)}_log_%"


def rejection_number(tag: Optional[Tag]) -> int:
    """Counter stored in ``_rejected_<n>``; 0 when absent or not numeric."""
    if tag is None or tag.state != REJECTED or not tag.detail or not tag.detail.isdigit():
        return 0
    return int(tag.detail)
