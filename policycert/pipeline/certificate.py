from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from .. import config
from ..config import BLACK, BRAND_BLUE, FOOTER_GRAY, GOLD, LIGHT_BLUE, LIGHT_GRAY, RGB, TOP_MARGIN
from .canvas import (
    Document,
    TextStyle,
    add_page,
    create_document,
    draw_image,
    draw_line,
    draw_rect,
    draw_text,
    serialize,
)
from .errors import AssetLoadError, DocumentGenerationError
from .layout import add_bullet_point, add_heading, add_text, check_page_break


logger = logging.getLogger(__name__)

MARGIN_X = 20.0
CONTENT_WIDTH = 170.0
INDENT_X = 25.0
INDENT_WIDTH = 165.0
SUB_INDENT_X = 35.0
SUB_INDENT_WIDTH = 155.0

LOGO_BOX = (20.0, 15.0, 35.0, 18.0)
TITLE_Y = 35.0
SIGNATURE_SIZE = (50.0, 20.0)
SIGNATURE_ADVANCE = 25.0

TABLE_ROW_HEIGHT = 8.0
TABLE_LABEL_WIDTH = 70.0
TABLE_BORDER_WIDTH = 0.5

REQUIRED_FIELDS = (
    "policy_number",
    "holder_name",
    "vehicle_make",
    "vehicle_model",
    "vehicle_year",
    "start_date",
    "end_date",
    "document_generated_at",
)


# -------------------- Formatting --------------------
def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # stored timestamps without an offset are UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_date(value) -> str:
    """'01 January 2025'"""
    d = _as_date(value)
    return d.strftime("%d %B %Y")


def london_time(value) -> str:
    return _as_datetime(value).astimezone(ZoneInfo(config.LONDON_TZ)).strftime("%H:%M")


def _validate(policy) -> None:
    missing = [name for name in REQUIRED_FIELDS if getattr(policy, name, None) in (None, "")]
    if missing:
        raise ValueError(f"Policy record missing fields: {', '.join(missing)}")


# -------------------- Policy table --------------------
def policy_fields(policy, labels: dict) -> List[Tuple[str, str]]:
    cover_time = london_time(policy.document_generated_at)
    return [
        (labels["policy_number"], str(policy.policy_number)),
        (labels["holder"], policy.holder_name),
        (labels["registration"], policy.vehicle_registration or labels["not_provided"]),
        (labels["vehicle"], f"{policy.vehicle_year} {policy.vehicle_make} {policy.vehicle_model}"),
        (labels["start"], f"{format_date(policy.start_date)} - {cover_time}"),
        (labels["end"], f"{format_date(policy.end_date)} - {cover_time}"),
    ]


def row_fill(index: int, row_count: int) -> Optional[RGB]:
    if index == 0:
        return GOLD
    if index == row_count - 1:
        return LIGHT_BLUE
    if index % 2 == 1:
        return LIGHT_GRAY
    return None


def row_text_color(index: int, row_count: int) -> RGB:
    if index in (0, row_count - 1):
        return BRAND_BLUE
    return BLACK


def draw_policy_table(doc: Document, rows: List[Tuple[str, str]], y: float) -> float:
    y = check_page_break(doc, y, len(rows) * TABLE_ROW_HEIGHT + 10)

    x = MARGIN_X
    top = y - 2
    for index, (label, value) in enumerate(rows):
        fill = row_fill(index, len(rows))
        if fill is not None:
            draw_rect(doc, x, y - 2, CONTENT_WIDTH, TABLE_ROW_HEIGHT, fill_color=fill)
        color = row_text_color(index, len(rows))
        draw_text(doc, label, x + 2, y + 3, TextStyle(font_size=8, font_style="bold", color=color))
        draw_text(doc, value, x + TABLE_LABEL_WIDTH + 2, y + 3, TextStyle(font_size=8, color=color))
        y += TABLE_ROW_HEIGHT

    # borders go on top of the row fills
    draw_rect(
        doc,
        x,
        top,
        CONTENT_WIDTH,
        len(rows) * TABLE_ROW_HEIGHT,
        stroke_color=BRAND_BLUE,
        line_width=TABLE_BORDER_WIDTH,
    )
    draw_line(doc, x + TABLE_LABEL_WIDTH, top, x + TABLE_LABEL_WIDTH, y - 2, color=BRAND_BLUE, line_width=TABLE_BORDER_WIDTH)
    for i in range(1, len(rows)):
        line_y = top + i * TABLE_ROW_HEIGHT
        draw_line(doc, x, line_y, x + CONTENT_WIDTH, line_y, color=BRAND_BLUE, line_width=TABLE_BORDER_WIDTH)
    return y


# -------------------- Images --------------------
def _load_asset(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise AssetLoadError(path, exc.strerror or str(exc)) from exc


def place_image(doc: Document, path: Path, x: float, y: float, w: float, h: float) -> bool:
    """Draw an image asset; a missing file is logged and skipped."""
    try:
        data = _load_asset(path)
    except AssetLoadError as exc:
        logger.warning("%s; continuing without it", exc)
        return False
    draw_image(doc, data, x, y, w, h)
    return True


# -------------------- Sections --------------------
def _section_header(doc: Document, content: dict, logo_path: Path) -> float:
    place_image(doc, logo_path, *LOGO_BOX)
    draw_text(
        doc,
        content["title"],
        doc.page_width / 2,
        TITLE_Y,
        TextStyle(font_size=14, font_style="bold", color=BRAND_BLUE, align="center"),
    )
    y = TITLE_Y + 8
    y = add_text(doc, content["intro"], MARGIN_X, y, max_width=CONTENT_WIDTH)
    return y + 5


def _section_insured_vehicle(doc: Document, block: dict, y: float) -> float:
    y = add_heading(doc, block["heading"], MARGIN_X, y)
    y = add_text(doc, block["lead"], MARGIN_X, y)
    y += 2
    for clause in block["clauses"]:
        y = add_text(doc, clause, INDENT_X, y, max_width=INDENT_WIDTH)
        y += 2
    for clause in block["sub_clauses"]:
        y = add_text(doc, clause, SUB_INDENT_X, y, max_width=SUB_INDENT_WIDTH)
        y += 2
    return y + 3


def _section_bullets(doc: Document, block: dict, y: float, holder: str, gap_after: float = 3) -> float:
    y = add_heading(doc, block["heading"], MARGIN_X, y)
    for bullet in block["bullets"]:
        y = add_bullet_point(doc, bullet.format(holder=holder), INDENT_X, y)
        y += 2
    return y + gap_after


def _section_permitted_drivers(doc: Document, block: dict, y: float, holder: str) -> float:
    y = add_heading(doc, block["heading"], MARGIN_X, y)
    y = add_text(doc, block["intro"], MARGIN_X, y, max_width=CONTENT_WIDTH)
    y += 3

    for driver in block["drivers"]:
        y = add_bullet_point(doc, driver.format(holder=holder), INDENT_X, y)
        y += 2
    y += 2

    y = add_text(doc, block["liability"].format(holder=holder), MARGIN_X, y, max_width=CONTENT_WIDTH)
    y += 2
    for condition in block["conditions"]:
        y = add_bullet_point(doc, condition, INDENT_X, y)
        y += 2
    y = add_text(doc, block["consent"], INDENT_X, y, max_width=INDENT_WIDTH)
    return y + 5


def _section_certification(doc: Document, block: dict, y: float, signature_path: Path) -> float:
    y = add_text(doc, block["text"], MARGIN_X, y, max_width=CONTENT_WIDTH, paginate=False)
    y += 5

    # the signature slot keeps its height whether or not the image is drawn
    place_image(doc, signature_path, MARGIN_X, y, *SIGNATURE_SIZE)
    y += SIGNATURE_ADVANCE

    draw_text(doc, block["signer_name"], MARGIN_X, y, TextStyle(font_size=8, font_style="bold", color=BRAND_BLUE))
    y += 3
    draw_text(doc, block["signer_title"], MARGIN_X, y, TextStyle(font_size=8))
    return y + 5


def _section_notices(doc: Document, content: dict, y: float) -> float:
    y = add_text(doc, content["third_party_note"], MARGIN_X, y, max_width=CONTENT_WIDTH, paginate=False)
    y += 4

    important = content["important"]
    y = add_heading(doc, important["heading"], MARGIN_X, y, paginate=False)
    y = add_text(doc, important["text"], MARGIN_X, y, max_width=CONTENT_WIDTH, paginate=False)
    y += 4

    y = add_text(doc, content["eu_wording"], MARGIN_X, y, max_width=CONTENT_WIDTH, paginate=False)
    y += 4

    to_whom = content["to_whom"]
    y = add_heading(doc, to_whom["heading"], MARGIN_X, y, font_size=8, paginate=False)
    y = add_text(doc, to_whom["text"], MARGIN_X, y, max_width=CONTENT_WIDTH, paginate=False)
    y += 3
    for bullet in to_whom["bullets"]:
        y = add_bullet_point(doc, bullet, INDENT_X, y, paginate=False)
        y += 2
    return y + 2


def _section_legal_notices(doc: Document, notices: List[dict], y: float) -> float:
    for notice in notices:
        draw_text(doc, notice["title"], MARGIN_X, y, TextStyle(font_size=7, font_style="italic", color=BRAND_BLUE))
        y += 3
        y = add_text(doc, notice["content"], INDENT_X, y, font_size=7, max_width=INDENT_WIDTH, paginate=False)
        y += 2
        for bullet in notice["bullets"]:
            draw_text(doc, f"a) {bullet}", INDENT_X, y, TextStyle(font_size=7))
            y += 2
        y += 3
    return y


def _section_contacts_footer(doc: Document, content: dict, y: float) -> float:
    for contact in content["contacts"]:
        draw_text(doc, contact["label"], MARGIN_X, y, TextStyle(font_size=8, font_style="bold", color=BRAND_BLUE))
        y += 3
        draw_text(doc, contact["value"], MARGIN_X, y, TextStyle(font_size=8))
        y += 4
    return add_text(
        doc,
        content["footer"],
        MARGIN_X,
        y,
        font_size=6,
        max_width=CONTENT_WIDTH,
        color=FOOTER_GRAY,
        paginate=False,
    )


def assemble_certificate(doc: Document, policy, content: dict, logo_path: Path, signature_path: Path) -> float:
    holder = policy.holder_name

    y = _section_header(doc, content, logo_path)
    y = draw_policy_table(doc, policy_fields(policy, content["table"]), y)
    y += 5

    y = _section_insured_vehicle(doc, content["insured_vehicle"], y)
    y = _section_bullets(doc, content["description_of_use"], y, holder)
    y = _section_bullets(doc, content["exclusions"], y, holder, gap_after=5)
    y = _section_permitted_drivers(doc, content["permitted_drivers"], y, holder)

    # certification and legal boilerplate always start a page of their own
    # and are never paginated
    add_page(doc)
    y = TOP_MARGIN
    y = _section_certification(doc, content["certification"], y, signature_path)
    y = _section_notices(doc, content, y)
    y = _section_legal_notices(doc, content["legal_notices"], y)
    return _section_contacts_footer(doc, content, y)


def generate_policy_document(
    policy,
    logo_path: Path | None = None,
    signature_path: Path | None = None,
    content: dict | None = None,
) -> bytes:
    """
    Render the certificate of car insurance for one policy as PDF bytes.

    Missing logo/signature files are skipped. Every other failure raises
    DocumentGenerationError and nothing is returned.
    """
    policy_number = getattr(policy, "policy_number", None)
    try:
        _validate(policy)
        content = content or config.load_certificate_content()
        doc = create_document(title=f"Certificate of car insurance {policy_number}")
        assemble_certificate(
            doc,
            policy,
            content,
            Path(logo_path or config.LOGO_PATH),
            Path(signature_path or config.SIGNATURE_PATH),
        )
        return serialize(doc)
    except Exception as exc:
        logger.error("Error generating certificate for %s: %s", policy_number, exc)
        raise DocumentGenerationError(f"Failed to generate certificate for policy {policy_number}") from exc
