from __future__ import annotations

import hashlib
import re
import shutil
from pathlib import Path
from typing import Iterable

from slugify import slugify
from sqlmodel import select

from . import config
from .models import Artifact, Policy, get_session


ARTIFACT_NAMES = {
    "certificate": "certificate.pdf",
    "preview_1": "preview_1.png",
    "error": "error.log",
}


def slug_from_policy_number(policy_number: str) -> str:
    slug = slugify(policy_number)
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = hashlib.md5(policy_number.encode("utf-8")).hexdigest()[:12]
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from policy number")
    return slug


def attachment_filename(policy_number: str) -> str:
    return f"Policy_Certificate_{policy_number}.pdf"


def policy_dir(slug: str, base_dir: Path | None = None, include_slug: bool = True) -> Path:
    root = base_dir or config.OUT_DIR
    path = root / slug if include_slug else root
    path.mkdir(parents=True, exist_ok=True)
    return path


def artifact_path(
    slug: str,
    artifact_type: str,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> Path:
    filename = ARTIFACT_NAMES[artifact_type]
    return policy_dir(slug, base_dir=base_dir, include_slug=include_slug) / filename


def _delete_artifact_rows(session, policy: Policy) -> None:
    for row in session.exec(select(Artifact).where(Artifact.policy_id == policy.id)):
        session.delete(row)


def clear_artifacts(policy: Policy) -> None:
    """Drop the policy's artifact rows and its output directory."""
    with get_session() as session:
        _delete_artifact_rows(session, policy)
        session.commit()
    shutil.rmtree(config.OUT_DIR / slug_from_policy_number(policy.policy_number), ignore_errors=True)


def record_artifacts(policy: Policy, artifacts: Iterable[tuple[str, Path]]) -> None:
    # a re-render replaces the previous rows rather than adding to them
    with get_session() as session:
        _delete_artifact_rows(session, policy)
        for artifact_type, path in artifacts:
            session.add(
                Artifact(
                    policy_id=policy.id,
                    type=artifact_type,
                    path=str(path.relative_to(config.OUT_DIR)),
                )
            )
        session.commit()
