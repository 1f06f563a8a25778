from __future__ import annotations

import copy
import logging
from datetime import datetime

import fitz
import pytest

from policycert import config
from policycert.config import BLACK, BRAND_BLUE, GOLD, LIGHT_BLUE, LIGHT_GRAY
from policycert.pipeline import canvas, certificate, layout
from policycert.pipeline.canvas import create_document
from policycert.pipeline.certificate import (
    draw_policy_table,
    format_date,
    generate_policy_document,
    london_time,
    policy_fields,
    row_fill,
    row_text_color,
)
from policycert.pipeline.errors import AssetDecodeError, DocumentGenerationError


def _render(policy, logo, signature) -> bytes:
    return generate_policy_document(policy, logo_path=logo, signature_path=signature)


def test_brand_colours() -> None:
    assert GOLD == (255, 215, 0)
    assert LIGHT_BLUE == (230, 240, 255)
    assert LIGHT_GRAY == (248, 249, 250)
    assert BRAND_BLUE == (0, 51, 152)


def test_content_ships_inside_package() -> None:
    assert config.CONTENT_PATH.is_relative_to(config.PACKAGE_DIR)
    assert config.LOGO_PATH.is_relative_to(config.PACKAGE_DIR)
    assert config.load_certificate_content()["certification"]["signer_name"] == "Helen Marsh"


def test_six_row_table_fills() -> None:
    fills = [row_fill(i, 6) for i in range(6)]
    assert fills == [GOLD, LIGHT_GRAY, None, LIGHT_GRAY, None, LIGHT_BLUE]
    colours = [row_text_color(i, 6) for i in range(6)]
    assert colours == [BRAND_BLUE, BLACK, BLACK, BLACK, BLACK, BRAND_BLUE]


def test_table_draws_fills_then_borders(monkeypatch, policy) -> None:
    calls = []
    original = certificate.draw_rect

    def recording_rect(doc, x, y, w, h, fill_color=None, stroke_color=None, line_width=None):
        calls.append((fill_color, stroke_color, y, h))
        original(doc, x, y, w, h, fill_color=fill_color, stroke_color=stroke_color, line_width=line_width)

    monkeypatch.setattr(certificate, "draw_rect", recording_rect)
    doc = create_document()
    rows = policy_fields(policy, config.load_certificate_content()["table"])
    end = draw_policy_table(doc, rows, 60)

    assert end == 60 + 6 * 8
    assert [c[0] for c in calls[:-1]] == [GOLD, LIGHT_GRAY, LIGHT_GRAY, LIGHT_BLUE]
    border_fill, border_stroke, border_y, border_h = calls[-1]
    assert border_fill is None
    assert border_stroke == BRAND_BLUE
    assert (border_y, border_h) == (58, 48)


def test_policy_fields(policy, policy_factory) -> None:
    labels = config.load_certificate_content()["table"]
    rows = dict(policy_fields(policy, labels))
    assert rows["Your policy number"] == "NMC-2025-000417"
    assert rows["Make of vehicle"] == "2019 Volkswagen Golf"
    assert rows["Start of cover"] == "01 January 2025 - 09:30"
    assert rows["End of cover"] == "31 December 2025 - 09:30"

    unregistered = dict(policy_fields(policy_factory(vehicle_registration=None), labels))
    assert unregistered["Vehicle registration"] == "Not provided"


def test_format_date_accepts_iso_strings() -> None:
    assert format_date("2025-03-07") == "07 March 2025"


def test_london_time_follows_summer_time() -> None:
    assert london_time(datetime(2025, 1, 15, 9, 5)) == "09:05"
    assert london_time("2025-07-15T09:05:00Z") == "10:05"


def test_certificate_end_to_end(policy, missing_path) -> None:
    data = _render(policy, missing_path, missing_path)
    assert data.startswith(b"%PDF")
    with fitz.open(stream=data, filetype="pdf") as pdf:
        assert pdf.page_count >= 2
        first = pdf[0].get_text()
        assert policy.policy_number in first
        assert "Your certificate of car insurance" in first
        assert "Jordan Ellis" in first
        second = pdf[pdf.page_count - 1].get_text()
        assert "Helen Marsh" in second
        assert "A chiunque possa interessare" in second


def test_certification_starts_new_page(policy, missing_path) -> None:
    with fitz.open(stream=_render(policy, missing_path, missing_path), filetype="pdf") as pdf:
        for index in range(pdf.page_count - 1):
            assert "I hereby certify" not in pdf[index].get_text()
        assert pdf[pdf.page_count - 1].get_text().lstrip().startswith("I hereby certify")


def test_missing_signature_keeps_signer_offset(policy, png_path, missing_path, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="policycert.pipeline.certificate"):
        without = _render(policy, missing_path, missing_path)
    assert without
    assert "continuing without it" in caplog.text

    with_signature = _render(policy, missing_path, png_path)

    def signer_rects(data: bytes):
        with fitz.open(stream=data, filetype="pdf") as pdf:
            page = pdf[pdf.page_count - 1]
            return page.search_for("Helen Marsh")[0], page.search_for("Chief Executive Officer")[0]

    assert signer_rects(without) == signer_rects(with_signature)
    assert len(with_signature.split(b"/Subtype /Image")) > len(without.split(b"/Subtype /Image"))


def test_rendering_is_deterministic(policy, png_path, missing_path) -> None:
    assert _render(policy, missing_path, png_path) == _render(policy, missing_path, png_path)


def test_long_input_still_paginates(policy_factory, missing_path) -> None:
    policy = policy_factory(holder_name="Maximilian Alexander Fitzgerald-Wolstenholme " * 3)
    with fitz.open(stream=_render(policy, missing_path, missing_path), filetype="pdf") as pdf:
        assert pdf.page_count >= 2


def test_malformed_image_is_fatal(policy, tmp_path, missing_path) -> None:
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"\x89PNG but not really")
    with pytest.raises(DocumentGenerationError) as excinfo:
        _render(policy, logo, missing_path)
    assert isinstance(excinfo.value.__cause__, AssetDecodeError)


def test_bad_policy_shape_is_fatal(policy_factory, missing_path) -> None:
    with pytest.raises(DocumentGenerationError) as excinfo:
        _render(policy_factory(policy_number=""), missing_path, missing_path)
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_duck_typed_policy(missing_path) -> None:
    class Record:
        policy_number = "DUCK-1"
        holder_name = "Sam Rivers"
        vehicle_make = "Ford"
        vehicle_model = "Fiesta"
        vehicle_year = 2021
        vehicle_registration = None
        start_date = "2025-01-01"
        end_date = "2025-12-31"
        document_generated_at = "2025-01-01T08:00:00Z"

    with fitz.open(stream=_render(Record(), missing_path, missing_path), filetype="pdf") as pdf:
        assert "DUCK-1" in pdf[0].get_text()


def test_oversized_boilerplate_stays_on_final_page(monkeypatch, policy, missing_path) -> None:
    content = copy.deepcopy(config.load_certificate_content())
    content["certification"]["text"] = " ".join([content["certification"]["text"]] * 30)
    for notice in content["legal_notices"]:
        notice["content"] = " ".join([notice["content"]] * 10)

    with fitz.open(stream=_render(policy, missing_path, missing_path), filetype="pdf") as pdf:
        expected_pages = pdf.page_count

    drawn = []
    original = canvas.draw_text

    def recording_text(doc, text, x, y, style):
        drawn.append((doc.page_count, text))
        original(doc, text, x, y, style)

    for module in (canvas, layout, certificate):
        monkeypatch.setattr(module, "draw_text", recording_text)

    data = generate_policy_document(policy, logo_path=missing_path, signature_path=missing_path, content=content)
    with fitz.open(stream=data, filetype="pdf") as pdf:
        assert pdf.page_count == expected_pages

    start = next(i for i, (_, text) in enumerate(drawn) if text.startswith("I hereby certify"))
    boilerplate_pages = {page for page, _ in drawn[start:]}
    assert boilerplate_pages == {expected_pages}
    assert any(content["footer"].startswith(text) for _, text in drawn[start:])
    assert any(text == content["contacts"][-1]["value"] for _, text in drawn[start:])
