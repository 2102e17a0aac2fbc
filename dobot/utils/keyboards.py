"""Inline keyboard helpers."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def button(text: str, callback_data: str) -> Dict[str, str]:
    return {"text": text, "callback_data": callback_data}


def keyboard(rows: List[List[Dict[str, str]]]) -> Dict[str, Any]:
    return {"inline_keyboard": rows}


def in_rows(buttons: Sequence[Dict[str, str]], per_row: int) -> List[List[Dict[str, str]]]:
    return [list(buttons[i:i + per_row]) for i in range(0, len(buttons), per_row)]


def paginate(items: Sequence[T], page: int, per_page: int) -> Tuple[List[T], int, int]:
    """Return ``(page_items, current_page, total_pages)`` with page clamped to range."""
    total_pages = max(1, math.ceil(len(items) / per_page))
    current = min(max(1, page), total_pages)
    start = (current - 1) * per_page
    return list(items[start:start + per_page]), current, total_pages
