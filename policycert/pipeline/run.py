from __future__ import annotations

from pathlib import Path
import logging
import shutil
from typing import Iterable, List

from .. import config
from ..models import CertificateStatus, Policy, get_session, init_db
from ..storage import artifact_path, clear_artifacts, record_artifacts, slug_from_policy_number
from .certificate import generate_policy_document
from .errors import DocumentGenerationError
from .render_preview import render_preview


logger = logging.getLogger(__name__)


def _write_error(slug: str, message: str) -> None:
    error_path = artifact_path(slug, "error", base_dir=config.OUT_DIR)
    error_path.write_text(message, encoding="utf-8")


def _prepare_temp_dir(slug: str) -> Path:
    temp_dir = config.OUT_DIR / f"{slug}.tmp"
    if temp_dir.exists():
        shutil.rmtree(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


def _finalize_artifacts(
    temp_dir: Path,
    final_dir: Path,
    artifacts: List[tuple[str, Path]],
) -> List[tuple[str, Path]]:
    if final_dir.exists():
        shutil.rmtree(final_dir)
    temp_dir.replace(final_dir)
    finalized: List[tuple[str, Path]] = []
    for artifact_type, path in artifacts:
        finalized.append((artifact_type, final_dir / path.relative_to(temp_dir)))
    return finalized


def process_policy(policy: Policy) -> List[tuple[str, Path]]:
    slug = slug_from_policy_number(policy.policy_number)
    temp_dir = _prepare_temp_dir(slug)
    try:
        pdf_bytes = generate_policy_document(policy)
        pdf_path = artifact_path(slug, "certificate", base_dir=temp_dir, include_slug=False)
        pdf_path.write_bytes(pdf_bytes)
        preview_path = render_preview(slug, pdf_path, base_dir=temp_dir, include_slug=False)
    except Exception:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    artifacts = [("certificate", pdf_path), ("preview_1", preview_path)]
    return _finalize_artifacts(temp_dir, config.OUT_DIR / slug, artifacts)


def run_pipeline(policies: Iterable[Policy]) -> dict[str, list[str]]:
    init_db()
    results: dict[str, list[str]] = {"READY": [], "FAILED": []}
    with get_session() as session:
        for policy in policies:
            artifacts: List[tuple[str, Path]] = []
            fail_code: str | None = None
            detail = ""
            try:
                artifacts = process_policy(policy)
            except DocumentGenerationError as exc:
                fail_code = "DOCUMENT_GENERATION_FAILED"
                cause = exc.__cause__
                detail = f"{exc}: {cause}" if cause else str(exc)
            except Exception as exc:
                logger.exception("Pipeline error for %s", policy.policy_number)
                fail_code = "PIPELINE_ERROR"
                detail = str(exc) or exc.__class__.__name__

            if fail_code is None:
                policy.certificate_status = CertificateStatus.READY
                policy.fail_code = None
                policy.fail_detail = None
            else:
                policy.certificate_status = CertificateStatus.FAILED
                policy.fail_code = fail_code
                policy.fail_detail = detail
            session.add(policy)
            session.commit()
            session.refresh(policy)

            if fail_code is None:
                record_artifacts(policy, artifacts)
                results["READY"].append(policy.policy_number)
                logger.info("Certificate ready for %s", policy.policy_number)
            else:
                # a failed re-render leaves only error.log behind
                clear_artifacts(policy)
                _write_error(slug_from_policy_number(policy.policy_number), detail)
                results["FAILED"].append(policy.policy_number)
                logger.info("Certificate failed for %s (%s)", policy.policy_number, fail_code)
    return results
