"""Typer based command line entry points for AWMS."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from awms.config import AwmsConfig, load_config
from awms.core.errors import AwmsError
from awms.core.logger import configure_logger, get_logger, set_level
from awms.core.pipeline import IngestionPipeline
from awms.services.connectivity import ConnectivityMonitor
from awms.services.resources import ResourceClient
from awms.services.viewer import RecordBrowser
from awms_persist.stores.collection_store import CollectionStore
from awms_persist.stores.file_store import FileRecordStore
from awms_persist.utils.paths import ensure_structure, exports_dir

app = typer.Typer(help="Offline workbook store for the Automation Workforce Management System.")
resources_app = typer.Typer(name="resources", help="Employees, tasks and performance collections.")
app.add_typer(resources_app, name="resources")

LOGGER = get_logger()


def _config(ctx: typer.Context) -> AwmsConfig:
    config = ctx.obj if isinstance(ctx.obj, AwmsConfig) else None
    if config is None:
        config = load_config()
        ctx.obj = config
    return config


def _handle_error(exc: Exception) -> None:
    LOGGER.error("awms operation failed: %s", exc, exc_info=True)
    typer.secho(f"Error: {exc}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _store(config: AwmsConfig) -> FileRecordStore:
    try:
        store = FileRecordStore(config.root)
        store.init_store()
    except (AwmsError, OSError) as exc:
        _handle_error(exc)
    return store


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to awms.yaml."),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    try:
        config = load_config(config_path)
        configure_logger(ensure_structure(config.root)["logs"])
        set_level(log_level)
        ctx.obj = config
    except (AwmsError, OSError, ValueError) as exc:
        _handle_error(exc)


@app.command("upload")
def cmd_upload(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Workbook (.xlsx) or CSV file to store."),
    sync: Optional[bool] = typer.Option(None, "--sync/--no-sync", help="Mirror to the server after saving."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Upload endpoint (default /upload)."),
) -> None:
    """Parse a file and save it locally, optionally mirroring it to the server."""

    config = _config(ctx)
    sync_config = config.sync
    if sync is not None:
        sync_config.enabled = sync
    if endpoint is not None:
        sync_config.endpoint = endpoint
    typer.echo("Parsing file...")
    store = _store(config)
    try:
        pipeline = IngestionPipeline(store, server_url=config.server_url)
        result = pipeline.ingest_file(path, sync_config)
    except AwmsError as exc:
        _handle_error(exc)
    else:
        typer.secho(result.status_message, fg=typer.colors.GREEN)
        if result.sync_warning:
            typer.secho(f"Warning: {result.sync_warning} (kept locally)", fg=typer.colors.YELLOW)
        elif result.sync is not None:
            typer.echo(result.sync.message)
    finally:
        store.close()


@app.command("list")
def cmd_list(ctx: typer.Context) -> None:
    """List files stored locally."""

    store = _store(_config(ctx))
    try:
        summaries = RecordBrowser(store).list_records()
    except AwmsError as exc:
        _handle_error(exc)
    else:
        if not summaries:
            typer.echo("No files stored locally.")
        for item in summaries:
            typer.echo(item.label)
    finally:
        store.close()


@app.command("view")
def cmd_view(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., help="Stored file id."),
    sheet: Optional[str] = typer.Option(None, "--sheet", help="Sheet name (default: first sheet)."),
    search: str = typer.Option("", "--search", help="Case-insensitive row filter."),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1, help="Rows per page."),
    page: int = typer.Option(1, "--page", min=1, help="Page number."),
) -> None:
    """Show one page of a stored sheet."""

    config = _config(ctx)
    store = _store(config)
    try:
        view = RecordBrowser(store, page_size=page_size or config.page_size).open_detail(record_id)
        if sheet is not None:
            view.select_sheet_by_name(sheet)
        if search:
            view.set_filter(search)
        view.go_to_page(page)
    except (AwmsError, KeyError) as exc:
        _handle_error(exc)
    else:
        typer.echo(f"{view.record.filename} / {view.sheet.name}  Rows: {view.filtered_count}")
        rows = view.page_rows()
        if not rows:
            typer.echo("No rows match")
        else:
            typer.echo(" | ".join(view.columns))
            for row in rows:
                typer.echo(" | ".join("" if row.get(col) is None else str(row.get(col)) for col in view.columns))
        typer.echo(f"Page {view.page} / {view.page_count}")
    finally:
        store.close()


@app.command("export-csv")
def cmd_export_csv(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., help="Stored file id."),
    sheet: Optional[str] = typer.Option(None, "--sheet", help="Sheet name (default: first sheet)."),
    search: str = typer.Option("", "--search", help="Only export rows matching this text."),
    out: Optional[Path] = typer.Option(None, "--out", help="Target directory."),
) -> None:
    """Export the filtered rows of one sheet as CSV."""

    config = _config(ctx)
    store = _store(config)
    try:
        view = RecordBrowser(store).open_detail(record_id)
        if sheet is not None:
            view.select_sheet_by_name(sheet)
        if search:
            view.set_filter(search)
        target = view.export_csv_to(out or exports_dir(config.root))
    except (AwmsError, KeyError) as exc:
        _handle_error(exc)
    else:
        typer.echo(f"CSV written: {target}")
    finally:
        store.close()


@app.command("export-all")
def cmd_export_all(
    ctx: typer.Context,
    out: Optional[Path] = typer.Option(None, "--out", help="Target directory or .zip path."),
) -> None:
    """Bundle every stored original file into one ZIP archive."""

    config = _config(ctx)
    store = _store(config)
    try:
        target = RecordBrowser(store).export_archive(out or exports_dir(config.root))
    except AwmsError as exc:
        _handle_error(exc)
    else:
        typer.echo(f"Archive written: {target}")
    finally:
        store.close()


@app.command("download")
def cmd_download(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., help="Stored file id."),
    out: Optional[Path] = typer.Option(None, "--out", help="Target directory."),
) -> None:
    """Write the original bytes of a stored file back to disk."""

    config = _config(ctx)
    store = _store(config)
    try:
        target = RecordBrowser(store).download(record_id, out or exports_dir(config.root))
    except AwmsError as exc:
        _handle_error(exc)
    else:
        typer.echo(f"Saved: {target}")
    finally:
        store.close()


@app.command("delete")
def cmd_delete(
    ctx: typer.Context,
    record_id: int = typer.Argument(..., help="Stored file id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete a stored file."""

    if not yes and not typer.confirm("Delete this stored file?"):
        raise typer.Exit(code=0)
    store = _store(_config(ctx))
    try:
        remaining = RecordBrowser(store).delete(record_id)
    except AwmsError as exc:
        _handle_error(exc)
    else:
        typer.echo(f"Deleted #{record_id}. {len(remaining)} file(s) remain.")
    finally:
        store.close()


@app.command("clear")
def cmd_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Remove every stored file."""

    if not yes and not typer.confirm("Remove all stored files?"):
        raise typer.Exit(code=0)
    store = _store(_config(ctx))
    try:
        store.clear()
    except AwmsError as exc:
        _handle_error(exc)
    else:
        typer.echo("Local store cleared.")
    finally:
        store.close()


@app.command("health")
def cmd_health(ctx: typer.Context) -> None:
    """Report server reachability and local store status."""

    config = _config(ctx)
    monitor = ConnectivityMonitor(
        config.server_url,
        health_path=config.health_path,
        timeout_sec=config.request_timeout_sec,
    )
    try:
        online = monitor.check()
    finally:
        monitor.close()
    typer.secho(
        f"server {monitor.health_url}: {'online' if online else 'offline'}",
        fg=typer.colors.GREEN if online else typer.colors.YELLOW,
    )
    try:
        health = FileRecordStore(config.root).healthcheck()
    except (AwmsError, OSError) as exc:
        _handle_error(exc)
    status = "OK" if health.is_healthy() else "FAIL"
    typer.echo(f"[{status}] local store ({health.record_counts.get('files', 0)} files)")
    for issue in health.issues:
        typer.echo(f"  - {issue}")
    if not health.is_healthy():
        raise typer.Exit(code=1)


# Resources ------------------------------------------------------------------------


@resources_app.command("ls")
def cmd_resources_list(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="employees, tasks or performance."),
    local: bool = typer.Option(False, "--local", help="Read the offline copy instead of the server."),
) -> None:
    """List documents of a collection."""

    config = _config(ctx)
    try:
        if local:
            with CollectionStore(config.root) as store:
                documents = store.get_all(resource)
        else:
            client = ResourceClient(config.server_url, timeout_sec=config.request_timeout_sec)
            try:
                documents = client.list(resource)
            finally:
                client.close()
    except (AwmsError, OSError, ValueError) as exc:
        _handle_error(exc)
    else:
        if not documents:
            typer.echo("<empty>")
        for document in documents:
            typer.echo(json.dumps(document, ensure_ascii=False, default=str))


@resources_app.command("add")
def cmd_resources_add(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="employees, tasks or performance."),
    payload: str = typer.Argument(..., help="JSON object to store."),
    local: bool = typer.Option(False, "--local", help="Store offline instead of on the server."),
) -> None:
    """Create a document in a collection."""

    try:
        document = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"payload is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise typer.BadParameter("payload must be a JSON object")
    config = _config(ctx)
    try:
        if local:
            with CollectionStore(config.root) as store:
                created = {"id": store.add(resource, document)}
        else:
            client = ResourceClient(config.server_url, timeout_sec=config.request_timeout_sec)
            try:
                created = client.create(resource, document)
            finally:
                client.close()
    except (AwmsError, OSError, ValueError) as exc:
        _handle_error(exc)
    else:
        typer.echo(json.dumps(created, ensure_ascii=False, default=str))


@resources_app.command("rm")
def cmd_resources_remove(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="employees, tasks or performance."),
    doc_id: str = typer.Argument(..., help="Document id."),
    local: bool = typer.Option(False, "--local", help="Delete from the offline copy."),
) -> None:
    """Delete a document; missing ids are not an error."""

    config = _config(ctx)
    try:
        if local:
            with CollectionStore(config.root) as store:
                store.delete(resource, int(doc_id))
        else:
            client = ResourceClient(config.server_url, timeout_sec=config.request_timeout_sec)
            try:
                client.delete(resource, doc_id)
            finally:
                client.close()
    except (AwmsError, OSError, ValueError) as exc:
        _handle_error(exc)
    else:
        typer.echo(f"Deleted {resource} {doc_id}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
