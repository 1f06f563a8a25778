from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import inspect, text
from sqlmodel import Field, SQLModel, create_engine, Session

from . import config


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CertificateStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"


class Policy(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    policy_number: str = Field(index=True, unique=True)
    status: str = "active"
    price: float = 0.0

    holder_name: str
    holder_email: str = ""
    holder_address: Optional[str] = None
    holder_date_of_birth: Optional[date] = None

    vehicle_make: str
    vehicle_model: str
    vehicle_colour: str = ""
    vehicle_year: int
    vehicle_registration: Optional[str] = None
    registered_keeper: Optional[str] = None

    start_date: date
    end_date: date
    document_generated_at: datetime

    certificate_status: CertificateStatus = Field(default=CertificateStatus.PENDING)
    fail_code: Optional[str] = None
    fail_detail: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Artifact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    policy_id: int = Field(foreign_key="policy.id")
    type: str
    path: str
    created_at: datetime = Field(default_factory=_utcnow)


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)
    _migrate_db()


def _migrate_db() -> None:
    """Add bookkeeping columns missing from databases created by older builds."""
    inspector = inspect(engine)
    if "policy" not in inspector.get_table_names():
        return
    columns = {col["name"] for col in inspector.get_columns("policy")}
    for name in ("fail_code", "fail_detail", "registered_keeper"):
        if name not in columns:
            with engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE policy ADD COLUMN {name} TEXT"))


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
