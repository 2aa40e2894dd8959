"""Text and numeric helpers shared by report hydration, editing and saving."""

import math
import re
from typing import Any, Iterable, Optional

_WHITESPACE_RE = re.compile(r"\s+")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


def safe_str(value: Any) -> str:
    """Stringify and strip, mapping None to an empty string."""
    if value is None:
        return ""
    return str(value).strip()


def parse_numeric(value: Any) -> Optional[float]:
    """
    Parse a loosely typed quantity into a float.

    Accepts numbers and strings using either "," or "." as decimal separator.
    Returns None for None, blanks, non-numeric text and non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    s = str(value).strip()
    if not s:
        return None
    try:
        n = float(s.replace(",", "."))
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def parse_hours(raw: Any) -> Optional[float]:
    """Parse worked hours ("8", "8.0", "8,5"). Negative or invalid gives None."""
    n = parse_numeric(raw)
    if n is None or n < 0:
        return None
    return n


def is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def split_lines(text: Any) -> list[str]:
    """Split on newlines, keeping empty lines."""
    return _LINE_SPLIT_RE.split(str(text or ""))


def join_lines(lines: Iterable[Any]) -> str:
    return "\n".join("" if x is None else str(x) for x in lines)


def align_legacy_hours(operators_text: Any, hours_text: Any) -> str:
    """
    Align the legacy hours list to the legacy operators list.

    The hours list is padded with empty lines or truncated so that it has
    exactly as many lines as the operators text. Line i of the result pairs
    with line i of the operators text.
    """
    op_count = len(split_lines(operators_text))
    hours_lines = split_lines(hours_text)
    hours_lines += [""] * max(0, op_count - len(hours_lines))
    return join_lines(hours_lines[:op_count])


def normalize_operator_label(label: Any) -> str:
    """Collapse whitespace and drop a leading '*' marker."""
    s = _WHITESPACE_RE.sub(" ", str(label or "")).strip()
    if s.startswith("*"):
        s = s[1:].strip()
    return s
