"""CLI entry point for HyperDrafter.

Commands:
    hyperdrafter analyze draft.md   # analyze every paragraph once, render highlights
    hyperdrafter spans draft.md     # same, but print validated highlights as JSON
    hyperdrafter watch draft.md     # re-analyze paragraphs as the file is saved
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional, Tuple

import click
import httpx
from rich.console import Console

from hyperdrafter.cli import progress
from hyperdrafter.cli.render import render_document
from hyperdrafter.config.loader import load_config, settings_provider
from hyperdrafter.models.config import Config
from hyperdrafter.services.exceptions import ConfigurationError
from hyperdrafter.services.file_monitor import FileMonitor
from hyperdrafter.services.llm_client import LLMClient
from hyperdrafter.services.paragraph_store import ParagraphStore
from hyperdrafter.services.pipeline import AnalysisPipeline
from hyperdrafter.utils.logging import configure_logging, get_logger
from hyperdrafter.utils.paragraphs import apply_document, paragraphs_from_text, split_paragraphs


logger = get_logger(__name__)
console = Console()

Failure = Tuple[str, BaseException]


def _load_config(config_path: Optional[Path]) -> Config:
    """
    Load configuration and check the service is usable.

    Raises:
        click.ClickException: If config is invalid, has open permissions, or lacks an API key
    """
    try:
        config = load_config(config_path)
        logger.info("config_loaded", path=str(config_path) if config_path else "default")
    except PermissionError as e:
        logger.error("config_permission_error", error=str(e))
        raise click.ClickException(str(e))
    except Exception as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")

    if not config.llm.api_key:
        logger.error("config_missing_api_key")
        raise click.ClickException(
            "API key not configured. Set llm.api_key in ~/.config/hyperdrafter/config.yaml "
            "or the HYPERDRAFTER_LLM_API_KEY environment variable."
        )
    return config


def _failure_message(paragraph_id: str, error: BaseException) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"{paragraph_id}: HTTP {error.response.status_code} from reasoning service"
    if isinstance(error, ConfigurationError):
        return f"{paragraph_id}: {error}"
    return f"{paragraph_id}: {type(error).__name__}: {error}"


async def analyze_once(
    store: ParagraphStore,
    client: LLMClient,
    config: Config,
) -> Tuple[AnalysisPipeline, List[Failure]]:
    """
    Analyze every paragraph of the store concurrently, without debouncing.

    Returns:
        The finished pipeline (for its highlight collection) and the failures
    """
    failures: List[Failure] = []
    pipeline = AnalysisPipeline(
        store,
        client,
        config.analysis,
        failure_reporter=lambda pid, error: failures.append((pid, error)),
    )
    pipeline.analyze_all()
    await pipeline.wait_idle()
    await pipeline.shutdown()
    return pipeline, failures


@click.group()
@click.version_option(version="0.1.0", prog_name="hyperdrafter")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ~/.config/hyperdrafter/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path]):
    """HyperDrafter: paragraph-by-paragraph writing feedback from a reasoning model."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _prepare(ctx: click.Context, path: Path) -> Tuple[Config, LLMClient, ParagraphStore]:
    config_path = ctx.obj.get("config_path")
    config = _load_config(config_path)
    client = LLMClient(settings_provider(config_path))
    store = ParagraphStore(paragraphs_from_text(path.read_text(encoding="utf-8")))
    return config, client, store


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def analyze(ctx: click.Context, path: Path):
    """
    Analyze every paragraph of a draft once and show the feedback.

    Paragraphs are separated by blank lines.
    """
    logger.info("analyze_command_started", path=str(path))
    config, client, store = _prepare(ctx, path)

    if len(store) == 0:
        progress.show_warning(f"No paragraphs found in {path}")
        return

    progress.show_analyzing(len(store), config.llm.model)
    pipeline, failures = asyncio.run(analyze_once(store, client, config))

    render_document(console, store.paragraphs(), pipeline.highlights)
    for paragraph_id, error in failures:
        progress.show_warning(_failure_message(paragraph_id, error))

    logger.info(
        "analyze_command_completed",
        highlights=len(pipeline.highlights),
        failures=len(failures),
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def spans(ctx: click.Context, path: Path):
    """Print validated highlights of a draft as JSON."""
    logger.info("spans_command_started", path=str(path))
    config, client, store = _prepare(ctx, path)

    pipeline, failures = asyncio.run(analyze_once(store, client, config))

    click.echo(json.dumps(
        [h.model_dump(mode="json") for h in pipeline.highlights.all()],
        indent=2,
    ))
    for paragraph_id, error in failures:
        progress.show_warning(_failure_message(paragraph_id, error))

    if failures and not len(pipeline.highlights):
        raise click.ClickException(f"Analysis failed for {len(failures)} paragraph(s)")


async def watch_file(
    path: Path,
    store: ParagraphStore,
    pipeline: AnalysisPipeline,
    interval: float = 0.25,
    duration: Optional[float] = None,
) -> None:
    """
    Poll a draft for saves and keep its highlights current.

    Every save is applied to the store paragraph by paragraph; the pipeline
    then clears edited paragraphs immediately and re-analyzes them once they
    have been quiet for the debounce period. The document is redrawn after
    each highlight or analysis-status change.
    """
    monitor = FileMonitor()
    monitor.record(path)

    redraw = asyncio.Event()
    pipeline.highlights.subscribe(lambda event: redraw.set())
    pipeline.dispatcher.add_status_listener(lambda pid, analyzing: redraw.set())

    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration is not None else None

    pipeline.start()
    redraw.set()
    try:
        while deadline is None or loop.time() < deadline:
            text = monitor.read_if_modified(path)
            if text is not None:
                logger.info("watched_file_modified", path=str(path))
                apply_document(store, split_paragraphs(text))

            if redraw.is_set():
                redraw.clear()
                console.clear()
                render_document(console, store.paragraphs(), pipeline.highlights, pipeline.analyzing)

            await asyncio.sleep(interval)
    finally:
        await pipeline.shutdown()


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--interval", default=0.25, show_default=True, help="Seconds between file checks")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
@click.pass_context
def watch(ctx: click.Context, path: Path, interval: float, duration: Optional[float]):
    """Watch a draft and re-analyze paragraphs as they settle."""
    logger.info("watch_command_started", path=str(path))
    config, client, store = _prepare(ctx, path)
    pipeline = AnalysisPipeline(store, client, config.analysis)

    progress.show_watching(str(path), config.analysis.quiet_period)
    try:
        asyncio.run(watch_file(path, store, pipeline, interval=interval, duration=duration))
    except KeyboardInterrupt:
        click.echo("\nStopped.", err=True)

    logger.info("watch_command_completed")


def main():
    """Main entry point for the console script."""
    cli()


if __name__ == "__main__":
    main()
