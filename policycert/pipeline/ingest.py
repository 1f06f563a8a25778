from __future__ import annotations

import csv
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from sqlmodel import select

from ..models import CertificateStatus, Policy, get_session, init_db


REQUIRED_COLUMNS = {
    "policy_number",
    "holder_name",
    "vehicle_make",
    "vehicle_model",
    "vehicle_year",
    "start_date",
    "end_date",
}


def load_rows(csv_path: Path) -> List[dict]:
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")
    with csv_path.open("r", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError("CSV has no header")
        missing = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing:
            raise ValueError(f"CSV missing columns: {', '.join(sorted(missing))}")
        rows = [row for row in reader if any((value or "").strip() for value in row.values())]
    if not rows:
        raise ValueError("CSV has no data rows")
    return rows


def _optional(row: dict, key: str) -> Optional[str]:
    value = (row.get(key) or "").strip()
    return value or None


def _parse_date(value: str, column: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid {column}: {value!r}") from None


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc).replace(microsecond=0)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid document_generated_at: {value!r}") from None
    # timestamps without an offset are UTC; stored values are always aware
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def policy_from_row(row: dict) -> Policy:
    for column in REQUIRED_COLUMNS:
        if not (row.get(column) or "").strip():
            raise ValueError(f"CSV row missing {column}")
    policy_number = row["policy_number"].strip()
    try:
        vehicle_year = int(row["vehicle_year"])
        price = float(row.get("price") or 0)
    except ValueError:
        raise ValueError(f"Invalid number in row for policy {policy_number}") from None

    start_date = _parse_date(row["start_date"].strip(), "start_date")
    end_date = _parse_date(row["end_date"].strip(), "end_date")
    if end_date < start_date:
        raise ValueError(f"Policy {policy_number} ends before it starts")

    dob = _optional(row, "holder_date_of_birth")
    return Policy(
        policy_number=policy_number,
        status=_optional(row, "status") or "active",
        price=price,
        holder_name=row["holder_name"].strip(),
        holder_email=_optional(row, "holder_email") or "",
        holder_address=_optional(row, "holder_address"),
        holder_date_of_birth=_parse_date(dob, "holder_date_of_birth") if dob else None,
        vehicle_make=row["vehicle_make"].strip(),
        vehicle_model=row["vehicle_model"].strip(),
        vehicle_colour=_optional(row, "vehicle_colour") or "",
        vehicle_year=vehicle_year,
        vehicle_registration=_optional(row, "vehicle_registration"),
        registered_keeper=_optional(row, "registered_keeper"),
        start_date=start_date,
        end_date=end_date,
        document_generated_at=_parse_timestamp(_optional(row, "document_generated_at")),
        certificate_status=CertificateStatus.PENDING,
    )


def ingest_policies(csv_path: Path) -> List[Policy]:
    init_db()
    rows = load_rows(csv_path)
    seen = set()
    policies: List[Policy] = []
    for row in rows:
        policy = policy_from_row(row)
        if policy.policy_number in seen:
            raise ValueError(f"Duplicate policy number: {policy.policy_number}")
        seen.add(policy.policy_number)
        policies.append(policy)

    with get_session() as session:
        existing = session.exec(select(Policy.policy_number).where(Policy.policy_number.in_(list(seen)))).all()
        if existing:
            raise ValueError(f"Policy numbers already stored: {', '.join(sorted(existing))}")
        session.add_all(policies)
        session.commit()
        for policy in policies:
            session.refresh(policy)
    return policies


def list_policies(
    statuses: Iterable[CertificateStatus],
    policy_number: str | None = None,
) -> List[Policy]:
    init_db()
    with get_session() as session:
        statement = select(Policy)
        if policy_number:
            statement = statement.where(Policy.policy_number == policy_number)
        if statuses:
            statement = statement.where(Policy.certificate_status.in_(list(statuses)))
        return list(session.exec(statement))
