"""
RESPONSIBILITIES
- Check that the local AWMS stores (uploaded files and offline collections) open and are writable.
PROCESS OVERVIEW
1. persist_healthcheck() opens each store once and collects its PersistHealth report.
2. `run` prints one block per store, or a JSON document with --json.
3. Exit code 1 when any store reports issues.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict

import typer

from awms.core.errors import AwmsError
from awms_persist.stores.base_store import PersistHealth
from awms_persist.stores.collection_store import CollectionStore
from awms_persist.stores.file_store import FileRecordStore
from awms_persist.utils.log import get_logger

app = typer.Typer(help="Check the local AWMS stores.")
logger = get_logger("tools.persist_health")

STORES = {
    "files": FileRecordStore,
    "collections": CollectionStore,
}


def persist_healthcheck(root: Path | None = None) -> Dict[str, PersistHealth]:
    results: Dict[str, PersistHealth] = {}
    for name, factory in STORES.items():
        try:
            results[name] = factory(root).healthcheck()
        except (AwmsError, OSError) as exc:
            logger.error("Healthcheck failed for %s store: %s", name, exc)
            results[name] = PersistHealth(dependencies={}, writable_paths={}, locked_paths=[], issues=[str(exc)])
    return results


@app.command("run")
def run_command(
    root: Path | None = typer.Option(None, help="AWMS data root (default ~/AWMS)."),
    as_json: bool = typer.Option(False, "--json", help="Print the reports as JSON."),
) -> None:
    results = persist_healthcheck(root)
    if as_json:
        typer.echo(json.dumps({name: asdict(health) for name, health in results.items()}, indent=2))
    else:
        for name, health in results.items():
            typer.echo(f"[{'OK' if health.is_healthy() else 'FAIL'}] {name}")
            counts = ", ".join(f"{table}={count}" for table, count in health.record_counts.items())
            typer.echo(f"  records: {counts or '-'}")
            for path, ok in health.writable_paths.items():
                if not ok:
                    typer.echo(f"  not writable: {path}")
            for issue in health.issues:
                typer.echo(f"  issue: {issue}")
    if not all(health.is_healthy() for health in results.values()):
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
