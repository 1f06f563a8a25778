from __future__ import annotations

import io
from dataclasses import dataclass
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape, portrait
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..config import BLACK, PT_TO_MM, RGB
from .errors import AssetDecodeError


FONT_NAMES = {
    "normal": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
    "bolditalic": "Helvetica-BoldOblique",
}

UNITS = {"mm": mm, "pt": 1.0}


@dataclass(frozen=True)
class TextStyle:
    font_size: float = 8
    font_style: str = "normal"
    color: RGB = BLACK
    align: str = "left"
    line_height: float = 1.1

    @property
    def font_name(self) -> str:
        try:
            return FONT_NAMES[self.font_style]
        except KeyError:
            raise ValueError(f"Unknown font style: {self.font_style}") from None

    @property
    def leading(self) -> float:
        """Vertical advance of one line, in millimetres."""
        return self.font_size * self.line_height * PT_TO_MM


class Document:
    """
    A ReportLab canvas seen through a top-left origin in document units.

    page_width/page_height are in document units. page_has_content flips on
    the first draw after a page is started, so a blank page can be reused
    instead of stacking another one behind it.
    """

    def __init__(self, canv: canvas.Canvas, buffer: io.BytesIO, page_size: Tuple[float, float], unit: str) -> None:
        self.canvas = canv
        self.buffer = buffer
        self.unit = unit
        self.scale = UNITS[unit]
        self.page_width = page_size[0] / self.scale
        self.page_height = page_size[1] / self.scale
        self.page_count = 1
        self.page_has_content = False

    def px(self, x: float) -> float:
        return x * self.scale

    def py(self, y: float) -> float:
        return (self.page_height - y) * self.scale


def _rgb(value: RGB) -> colors.Color:
    r, g, b = value
    return colors.Color(r / 255.0, g / 255.0, b / 255.0)


def create_document(
    page_size: Tuple[float, float] = A4,
    orientation: str = "portrait",
    unit: str = "mm",
    title: Optional[str] = None,
) -> Document:
    if orientation == "portrait":
        size = portrait(page_size)
    elif orientation == "landscape":
        size = landscape(page_size)
    else:
        raise ValueError(f"Unknown orientation: {orientation}")
    if unit not in UNITS:
        raise ValueError(f"Unknown unit: {unit}")

    buffer = io.BytesIO()
    # invariant=1 drops the creation date and random document id
    canv = canvas.Canvas(buffer, pagesize=size, invariant=1)
    if title:
        canv.setTitle(title)
    return Document(canv, buffer, size, unit)


def add_page(doc: Document) -> None:
    doc.canvas.showPage()
    doc.page_count += 1
    doc.page_has_content = False


def draw_text(doc: Document, text: str, x: float, y: float, style: TextStyle) -> None:
    canv = doc.canvas
    canv.setFont(style.font_name, style.font_size)
    canv.setFillColor(_rgb(style.color))
    px, py = doc.px(x), doc.py(y)
    if style.align == "center":
        canv.drawCentredString(px, py, text)
    elif style.align == "right":
        canv.drawRightString(px, py, text)
    else:
        canv.drawString(px, py, text)
    doc.page_has_content = True


def _break_word(canv: canvas.Canvas, word: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    pieces: List[str] = []
    cur = ""
    for ch in word:
        if cur and canv.stringWidth(cur + ch, font_name, font_size) > max_width:
            pieces.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        pieces.append(cur)
    return pieces


def _wrap_words(canv: canvas.Canvas, text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    words = (text or "").split()
    if not words:
        return [""]

    lines: List[str] = []
    cur: List[str] = []

    for w in words:
        test = " ".join(cur + [w])
        if canv.stringWidth(test, font_name, font_size) <= max_width:
            cur.append(w)
            continue

        if cur:
            lines.append(" ".join(cur))
            cur = []

        if canv.stringWidth(w, font_name, font_size) <= max_width:
            cur = [w]
            continue

        # wider than a whole line: split by character
        pieces = _break_word(canv, w, font_name, font_size, max_width)
        lines.extend(pieces[:-1])
        cur = [pieces[-1]]

    if cur:
        lines.append(" ".join(cur))

    return lines


def split_text(doc: Document, text: str, max_width: float, style: TextStyle) -> List[str]:
    limit = doc.px(max_width)
    lines: List[str] = []
    for paragraph in (text or "").split("\n"):
        lines.extend(_wrap_words(doc.canvas, paragraph, style.font_name, style.font_size, limit))
    return lines


def draw_wrapped_text(doc: Document, text: str, x: float, y: float, max_width: float, style: TextStyle) -> int:
    lines = split_text(doc, text, max_width, style)
    for i, line in enumerate(lines):
        draw_text(doc, line, x, y + i * style.leading, style)
    return len(lines)


def draw_rect(
    doc: Document,
    x: float,
    y: float,
    w: float,
    h: float,
    fill_color: Optional[RGB] = None,
    stroke_color: Optional[RGB] = None,
    line_width: Optional[float] = None,
) -> None:
    canv = doc.canvas
    fill = fill_color is not None
    stroke = stroke_color is not None or not fill
    if fill:
        canv.setFillColor(_rgb(fill_color))
    if stroke_color is not None:
        canv.setStrokeColor(_rgb(stroke_color))
    if line_width is not None:
        canv.setLineWidth(doc.px(line_width))
    canv.rect(doc.px(x), doc.py(y + h), doc.px(w), doc.px(h), stroke=int(stroke), fill=int(fill))
    doc.page_has_content = True


def draw_line(
    doc: Document,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    color: Optional[RGB] = None,
    line_width: Optional[float] = None,
) -> None:
    canv = doc.canvas
    if color is not None:
        canv.setStrokeColor(_rgb(color))
    if line_width is not None:
        canv.setLineWidth(doc.px(line_width))
    canv.line(doc.px(x1), doc.py(y1), doc.px(x2), doc.py(y2))
    doc.page_has_content = True


def draw_image(doc: Document, data: bytes, x: float, y: float, w: float, h: float) -> None:
    try:
        image = ImageReader(io.BytesIO(data))
        image.getSize()
    except Exception as exc:
        raise AssetDecodeError(f"Could not decode image ({len(data)} bytes)") from exc
    doc.canvas.drawImage(image, doc.px(x), doc.py(y + h), width=doc.px(w), height=doc.px(h), mask="auto")
    doc.page_has_content = True


def serialize(doc: Document) -> bytes:
    # showPage closes the current page; save() then has nothing left to flush
    doc.canvas.showPage()
    doc.canvas.save()
    return doc.buffer.getvalue()
