from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import config
from .models import CertificateStatus, reset_engine
from .pipeline.ingest import ingest_policies, list_policies
from .pipeline.run import run_pipeline

app = typer.Typer(help="Insurance certificate rendering")


def _use_out_dir(out: Optional[Path]) -> None:
    if out:
        config.set_out_dir(out)
        reset_engine()


@app.command()
def ingest(
    csv: Path = typer.Option(..., "--csv", help="CSV of policy records"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
) -> None:
    _use_out_dir(out)
    policies = ingest_policies(csv)
    typer.echo(f"Ingested {len(policies)} policies")


@app.command()
def render(
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    policy_number: Optional[str] = typer.Option(None, "--policy-number", help="Render a single policy"),
) -> None:
    _use_out_dir(out)
    statuses = [] if policy_number else [CertificateStatus.PENDING]
    policies = list_policies(statuses, policy_number=policy_number)
    if not policies:
        typer.echo("No policies to render")
        return
    results = run_pipeline(policies)
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")
    for number in results["FAILED"]:
        typer.echo(f"FAILED: {number}")


@app.command()
def retry(
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
) -> None:
    _use_out_dir(out)
    policies = list_policies([CertificateStatus.FAILED])
    if not policies:
        typer.echo("No policies to retry")
        return
    results = run_pipeline(policies)
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")


if __name__ == "__main__":
    app()
