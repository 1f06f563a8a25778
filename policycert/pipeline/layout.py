"""
Cursor-based vertical layout on top of the canvas helpers.

Every function takes the current y offset and returns the advanced one; the
caller owns the cursor. Heights are estimated from font size because the
canvas only reports text widths: one line takes
``font_size * line_height * PT_TO_MM`` millimetres.
"""
from __future__ import annotations

from typing import Optional

from ..config import (
    BLACK,
    BOTTOM_MARGIN,
    BRAND_BLUE,
    HEADING_ADVANCE,
    HEADING_SPACE,
    PT_TO_MM,
    RGB,
    TOP_MARGIN,
)
from .canvas import Document, TextStyle, add_page, draw_text, draw_wrapped_text, split_text


def check_page_break(
    doc: Document,
    y: float,
    required_space: float = 20,
    top_margin: float = TOP_MARGIN,
    bottom_margin: float = BOTTOM_MARGIN,
) -> float:
    """Return ``y``, or ``top_margin`` on a fresh page when ``required_space`` does not fit.

    The break is idempotent: when nothing has been drawn on the current page
    yet, that page already is the fresh page, so no further page is added.
    Repeated calls therefore never stack blank pages.
    """
    if y + required_space > doc.page_height - bottom_margin:
        if doc.page_has_content:
            add_page(doc)
        return top_margin
    return y


def add_text(
    doc: Document,
    text: str,
    x: float,
    y: float,
    font_size: float = 8,
    font_style: str = "normal",
    align: str = "left",
    max_width: Optional[float] = None,
    line_height: float = 1.1,
    color: RGB = BLACK,
    paginate: bool = True,
) -> float:
    style = TextStyle(font_size=font_size, font_style=font_style, color=color, align=align, line_height=line_height)

    if max_width:
        lines = split_text(doc, text, max_width, style)
        total_height = len(lines) * font_size * line_height * PT_TO_MM
        if paginate:
            y = check_page_break(doc, y, total_height)
        draw_wrapped_text(doc, text, x, y, max_width, style)
        return y + total_height

    advance = font_size * line_height * PT_TO_MM
    if paginate:
        y = check_page_break(doc, y, advance)
    draw_text(doc, text, x, y, style)
    return y + advance


def add_heading(
    doc: Document,
    text: str,
    x: float,
    y: float,
    font_size: float = 10,
    paginate: bool = True,
) -> float:
    if paginate:
        y = check_page_break(doc, y, HEADING_SPACE)
    draw_text(doc, text, x, y, TextStyle(font_size=font_size, font_style="bold", color=BRAND_BLUE))
    # headings are single-line; the advance is fixed
    return y + HEADING_ADVANCE


def add_bullet_point(
    doc: Document,
    text: str,
    x: float,
    y: float,
    font_size: float = 8,
    max_width: float = 165,
    paginate: bool = True,
) -> float:
    return add_text(doc, f"• {text}", x, y, font_size=font_size, max_width=max_width, paginate=paginate)
