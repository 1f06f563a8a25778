from __future__ import annotations

from pathlib import Path
from typing import Tuple
import json


PACKAGE_DIR = Path(__file__).resolve().parent
OUT_DIR = Path.cwd() / "out"
DB_PATH = OUT_DIR / "policies.db"
ASSETS_DIR = PACKAGE_DIR / "assets"
LOGO_PATH = ASSETS_DIR / "brand" / "logo.png"
SIGNATURE_PATH = ASSETS_DIR / "brand" / "signature.png"
CONTENT_PATH = ASSETS_DIR / "content" / "certificate.json"

RGB = Tuple[int, int, int]

# Layout, in millimetres unless noted.
TOP_MARGIN = 20.0
BOTTOM_MARGIN = 20.0
PT_TO_MM = 0.352778
HEADING_SPACE = 10.0
HEADING_ADVANCE = 4.0

BRAND_BLUE: RGB = (0, 51, 152)
GOLD: RGB = (255, 215, 0)
LIGHT_BLUE: RGB = (230, 240, 255)
LIGHT_GRAY: RGB = (248, 249, 250)
BLACK: RGB = (0, 0, 0)
FOOTER_GRAY: RGB = (100, 100, 100)

LONDON_TZ = "Europe/London"


def load_certificate_content(path: Path | None = None) -> dict:
    with (path or CONTENT_PATH).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "policies.db"
