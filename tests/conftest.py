from __future__ import annotations

import io
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

from policycert.models import Policy


def make_policy(**overrides) -> Policy:
    values = dict(
        policy_number="NMC-2025-000417",
        holder_name="Jordan Ellis",
        holder_email="jordan.ellis@example.com",
        vehicle_make="Volkswagen",
        vehicle_model="Golf",
        vehicle_colour="Blue",
        vehicle_year=2019,
        vehicle_registration="AB19 CDE",
        price=642.5,
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        document_generated_at=datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Policy(**values)


@pytest.fixture
def policy() -> Policy:
    return make_policy()


@pytest.fixture
def policy_factory():
    return make_policy


@pytest.fixture
def png_path(tmp_path: Path) -> Path:
    buf = io.BytesIO()
    Image.new("RGB", (40, 16), (20, 20, 20)).save(buf, format="PNG")
    path = tmp_path / "signature.png"
    path.write_bytes(buf.getvalue())
    return path


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "does-not-exist.png"
