"""Typer CLI: one-shot batch analysis, session inspection, presets, endpoint health and DB bootstrap."""

import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from seotagger.ai.errors import ConfigurationError
from seotagger.ai.factory import get_model_endpoint
from seotagger.core.config import get_config
from seotagger.core.file_extensions import IMAGE_EXTENSIONS, MAX_FILES_PER_BATCH
from seotagger.core.logging import get_flight_logger, setup_logging
from seotagger.core.storage import RejectedUploadError, StoredUpload, UploadStore
from seotagger.models.entities import ImageStatus
from seotagger.repository.db import create_db_engine, init_db, make_session_factory
from seotagger.repository.image_repo import ImageRepository
from seotagger.repository.preset_repo import PresetRepository
from seotagger.workers.analysis_worker import AnalysisWorker, BatchReport

app = typer.Typer(no_args_is_help=True)
session_app = typer.Typer(help="Inspect analysis sessions.")
app.add_typer(session_app, name="session")
preset_app = typer.Typer(help="List validation presets.")
app.add_typer(preset_app, name="preset")
db_app = typer.Typer(help="Database bootstrap.")
app.add_typer(db_app, name="db")

_STATUS_COLORS = {
    ImageStatus.pending: "yellow",
    ImageStatus.processing: "cyan",
    ImageStatus.completed: "green",
    ImageStatus.error: "red",
}


def _get_session_factory():
    engine = create_db_engine(get_config().database_url)
    init_db(engine)
    return make_session_factory(engine)


def _expand_paths(paths: list[Path]) -> list[Path]:
    """Files as given; directories contribute their image files (non-recursive, sorted)."""
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(
                sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)
            )
        else:
            files.append(path)
    return files


def _status_text(status: ImageStatus) -> str:
    color = _STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def _print_report(report: BatchReport) -> None:
    table = Table(title=f"Session {report.session_id}")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Title")
    table.add_column("Keywords", justify="right")
    table.add_column("Error")
    for outcome in report.outcomes:
        result = outcome.result
        table.add_row(
            outcome.original_name,
            _status_text(outcome.status),
            result.title if result else "",
            str(len(result.keywords)) if result else "",
            outcome.error or "",
        )
    console = Console()
    console.print(table)


@app.command("analyze")
def analyze(
    paths: list[Path] = typer.Argument(..., help="Image files or directories of images."),
    preset_id: str | None = typer.Option(None, "--preset", help="Preset id used to validate results (see 'preset list')."),
    session_name: str | None = typer.Option(None, "--session-name", help="Name for the new session."),
    prompt: str | None = typer.Option(None, "--prompt", help="Prompt sent with each image. Defaults to the configured prompt."),
    model: str | None = typer.Option(None, "--model", help="Model override (OpenAI-compatible mode only)."),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Images analyzed concurrently. Defaults to max_workers."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each completed image."),
    forensics: bool = typer.Option(False, "--forensics", help="Dump the flight log when any image fails."),
) -> None:
    """Analyze a batch of local images synchronously and print per-image results."""
    cfg = get_config()
    setup_logging("DEBUG" if verbose else None)

    files = _expand_paths(paths)
    if not files:
        typer.secho("No image files found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    if len(files) > MAX_FILES_PER_BATCH:
        typer.secho(f"Too many files ({len(files)}, max {MAX_FILES_PER_BATCH}).", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    store = UploadStore()
    uploads: list[StoredUpload] = []
    for path in files:
        try:
            uploads.append(store.register_local(path))
        except RejectedUploadError as e:
            typer.secho(str(e), fg=typer.colors.RED, err=True)
            raise typer.Exit(1)

    try:
        endpoint = get_model_endpoint()
    except ConfigurationError as e:
        typer.secho(f"Model endpoint misconfigured: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    session_factory = _get_session_factory()
    image_repo = ImageRepository(session_factory)
    preset = None
    if preset_id is not None:
        preset = PresetRepository(session_factory).get(preset_id)
        if preset is None:
            typer.secho(
                f"Preset not found: '{preset_id}'. Use 'preset list' to see valid ids.",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)

    session = image_repo.create_session(session_name)
    typer.secho(f"Analyzing {len(uploads)} image(s) in session {session.id} (mode: {endpoint.mode})")

    worker = AnalysisWorker(
        image_repo,
        endpoint,
        preset=preset,
        prompt=prompt or cfg.default_prompt,
        model=model,
        max_workers=workers or cfg.max_workers,
        verbose=verbose,
    )
    previous = (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM))
    worker.install_signal_handlers()
    try:
        report = worker.run(session.id, uploads)
    finally:
        signal.signal(signal.SIGINT, previous[0])
        signal.signal(signal.SIGTERM, previous[1])

    _print_report(report)
    typer.echo(
        f"{report.completed} completed, {report.failed} failed, "
        f"{report.not_started} not started ({report.elapsed_seconds:.1f}s)"
    )
    if worker.cancelled:
        typer.secho("Batch cancelled.", fg=typer.colors.YELLOW)

    if forensics and report.failed:
        flight = get_flight_logger()
        if flight is not None:
            path = flight.dump("analyze", session.id)
            typer.secho(f"Flight log written to {path}", fg=typer.colors.YELLOW)


@session_app.command("show")
def session_show(
    session_id: str = typer.Argument(..., help="Session id printed by 'analyze'."),
) -> None:
    """Show every image of a session with its status and metadata."""
    image_repo = ImageRepository(_get_session_factory())
    session = image_repo.get_session(session_id)
    if session is None:
        typer.secho(f"Session not found: {session_id}", fg=typer.colors.RED)
        raise typer.Exit(1)
    images = image_repo.get_images(session_id)
    table = Table(title=session.name)
    table.add_column("Id")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Title")
    table.add_column("Keywords")
    table.add_column("Error")
    for image in images:
        table.add_row(
            image.id,
            image.original_name,
            _status_text(ImageStatus(image.status)),
            image.title or "",
            ", ".join(image.keywords or []),
            image.error_message or "",
        )
    console = Console()
    console.print(table)


@preset_app.command("list")
def preset_list() -> None:
    """List presets (Id | Name | Title max | Keywords | Export)."""
    presets = PresetRepository(_get_session_factory()).list_presets()
    if not presets:
        typer.echo("No presets.")
        return
    table = Table(title=None)
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Title max", justify="right")
    table.add_column("Keywords", justify="right")
    table.add_column("Export")
    for preset in presets:
        table.add_row(
            preset.id,
            preset.name,
            str(preset.title_max_length),
            f"{preset.keywords_min}-{preset.keywords_max}",
            str(getattr(preset.export_format, "value", preset.export_format)),
        )
    console = Console()
    console.print(table)


@app.command("health")
def health() -> None:
    """Check the configured model endpoint. Exit 1 when unreachable or misconfigured."""
    try:
        result = get_model_endpoint().health()
    except ConfigurationError as e:
        typer.secho(f"Model endpoint misconfigured: {e}", fg=typer.colors.RED)
        raise typer.Exit(1)
    if not result.ok:
        typer.secho(result.info, fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.secho(result.info, fg=typer.colors.GREEN)


@db_app.command("init")
def db_init() -> None:
    """Create tables and seed the default presets."""
    engine = create_db_engine(get_config().database_url)
    init_db(engine)
    typer.secho("Database initialized.", fg=typer.colors.GREEN)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
