"""dualsub CLI: translate subtitle lines and merge translated tracks."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from dualsub_core import VERSION
from dualsub_core.alignment import estimate_drift_ratio, merge_translated_track
from dualsub_core.pipeline import TranslationPipeline
from dualsub_core.ports.export import ExportError
from dualsub_core.ports.ingest import IngestBatchError, IngestError
from dualsub_core.ports.orchestrator import LogSinkProtocol, ProgressSinkProtocol
from dualsub_core.ports.translator import TranslationError
from dualsub_core.run_context import TranslationRunContext
from dualsub_io.export.jsonl_adapter import JsonlExportAdapter
from dualsub_io.ingest.jsonl_adapter import JsonlIngestAdapter
from dualsub_io.storage.log_sink import build_log_sink
from dualsub_io.storage.progress_sink import (
    CompositeProgressSink,
    FileSystemProgressSink,
)
from dualsub_llm import LlmTranslator, SubtitleAssistant
from dualsub_schemas.config import RunConfig
from dualsub_schemas.primitives import RunStatus
from dualsub_schemas.progress import ProgressUpdate
from dualsub_schemas.translation import TranslationRunResult

EXIT_RUN_INCOMPLETE = 1
EXIT_CONFIG_ERROR = 2
EXIT_IO_ERROR = 3

TRANSLATED_SUFFIX = ".translated.jsonl"

INPUT_OPTION = typer.Option(
    ..., "--input", "-i", help="JSONL file of source Line records"
)
INPUTS_OPTION = typer.Option(
    ...,
    "--input",
    "-i",
    help="JSONL file of source Line records (repeat to queue several files)",
)
OUTPUT_OPTION = typer.Option(
    ..., "--output", "-o", help="Path to write translated JSONL lines"
)
OUTPUT_FILE_OPTION = typer.Option(
    None,
    "--output",
    "-o",
    help="Output path for a single input (defaults to <input>.translated.jsonl)",
)
OUTPUT_DIR_OPTION = typer.Option(
    None,
    "--output-dir",
    help="Directory receiving <stem>.translated.jsonl for every input",
)
TRANSLATED_OPTION = typer.Option(
    ..., "--translated", help="JSONL file of an already translated track"
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to dualsub TOML config (defaults apply when omitted)",
)
TARGET_LANGUAGE_OPTION = typer.Option(
    None, "--target-language", "-t", help="Override the target language"
)
CONTEXT_OPTION = typer.Option(
    None, "--context", help="Override the plot or setting summary"
)
AUTO_CONTEXT_OPTION = typer.Option(
    False,
    "--auto-context",
    help="Generate a plot summary from the file name when no context is set",
)
AUTO_GLOSSARY_OPTION = typer.Option(
    False,
    "--auto-glossary",
    help="Generate a names and terms glossary when none is set",
)
DETECT_LANGUAGE_OPTION = typer.Option(
    False,
    "--detect-language",
    help="Detect the source language and confirm before translating non-English",
)
YES_OPTION = typer.Option(
    False, "--yes", "-y", help="Translate non-English sources without asking"
)
LOG_FILE_OPTION = typer.Option(
    None, "--log-file", help="JSONL log path used by file log sinks"
)
PROGRESS_FILE_OPTION = typer.Option(
    None, "--progress-file", help="Append JSONL progress updates to this path"
)
NO_OPTIMIZE_OPTION = typer.Option(
    False, "--no-optimize", help="Keep original end times on export"
)

app = typer.Typer(
    help="Dual-language subtitle translation",
    no_args_is_help=True,
)


class _ConfigError(ValueError):
    """Raised when configuration cannot be loaded or is incomplete."""


@dataclass(frozen=True, slots=True)
class _FileJob:
    input_path: Path
    output_path: Path


@dataclass(frozen=True, slots=True)
class _PrepareOptions:
    auto_context: bool = False
    auto_glossary: bool = False
    detect_language: bool = False
    assume_yes: bool = False


@dataclass(slots=True)
class _FileOutcome:
    job: _FileJob
    result: TranslationRunResult | None = None
    written: bool = False
    io_error: bool = False

    @property
    def completed(self) -> bool:
        return self.result is not None and self.result.status == RunStatus.COMPLETED


@dataclass(slots=True)
class _QueueControl:
    """Cancellation shared by the queue and the file currently running."""

    stop_requested: bool = False
    current: TranslationRunContext | None = None

    def request_stop(self) -> None:
        self.stop_requested = True
        if self.current is not None:
            self.current.cancel()


@app.callback()
def main() -> None:
    """Dualsub CLI."""


@app.command()
def version() -> None:
    """Display version information."""
    rprint(f"[bold]dualsub[/bold] v{VERSION}")


@app.command()
def translate(
    input_paths: list[Path] = INPUTS_OPTION,
    output_path: Path | None = OUTPUT_FILE_OPTION,
    output_dir: Path | None = OUTPUT_DIR_OPTION,
    config_path: Path | None = CONFIG_OPTION,
    target_language: str | None = TARGET_LANGUAGE_OPTION,
    context: str | None = CONTEXT_OPTION,
    auto_context: bool = AUTO_CONTEXT_OPTION,
    auto_glossary: bool = AUTO_GLOSSARY_OPTION,
    detect_language: bool = DETECT_LANGUAGE_OPTION,
    assume_yes: bool = YES_OPTION,
    log_path: Path | None = LOG_FILE_OPTION,
    progress_path: Path | None = PROGRESS_FILE_OPTION,
) -> None:
    """Translate one or more JSONL line files and write dual-language results.

    Files are processed in order, each as its own run. A stopped or failed
    file does not affect the files after it. Ctrl+C cancels the current
    file and skips the rest.

    Raises:
        typer.Exit: With a non-zero code when any file does not complete.
    """
    console = Console(stderr=True)
    try:
        jobs = _plan_jobs(input_paths, output_path, output_dir)
        config = _load_run_config(config_path)
        config = _apply_overrides(config, target_language, context)
        api_key = _resolve_api_key(config)
        log_sink = build_log_sink(config.logging, log_path)
    except (_ConfigError, ValidationError, ValueError) as exc:
        _render_error(f"Configuration error: {exc}", console)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    options = _PrepareOptions(
        auto_context=auto_context,
        auto_glossary=auto_glossary,
        detect_language=detect_language,
        assume_yes=assume_yes,
    )
    outcomes = asyncio.run(
        _translate_queue_async(
            jobs,
            config=config,
            api_key=api_key,
            options=options,
            log_sink=log_sink,
            progress_path=progress_path,
            console=console,
        )
    )

    for outcome in outcomes:
        if outcome.result is not None:
            output = outcome.job.output_path if outcome.written else None
            _render_run_summary(outcome.result, output, console)
    if len(jobs) > 1:
        completed = sum(1 for outcome in outcomes if outcome.completed)
        console.print(f"Translated {completed} of {len(jobs)} files")

    if any(outcome.io_error for outcome in outcomes):
        raise typer.Exit(code=EXIT_IO_ERROR)
    if len(outcomes) < len(jobs) or not all(o.completed for o in outcomes):
        raise typer.Exit(code=EXIT_RUN_INCOMPLETE)


@app.command()
def merge(
    input_path: Path = INPUT_OPTION,
    translated_path: Path = TRANSLATED_OPTION,
    output_path: Path = OUTPUT_OPTION,
    config_path: Path | None = CONFIG_OPTION,
    no_optimize: bool = NO_OPTIMIZE_OPTION,
) -> None:
    """Merge an existing translated track onto the source timeline.

    Raises:
        typer.Exit: With a non-zero code on configuration or I/O errors.
    """
    console = Console(stderr=True)
    try:
        config = _load_run_config(config_path)
    except (_ConfigError, ValidationError) as exc:
        _render_error(f"Configuration error: {exc}", console)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    optimize = config.timing.optimize and not no_optimize
    try:
        ratio, written = asyncio.run(
            _merge_async(config, input_path, translated_path, output_path, optimize)
        )
    except (IngestError, IngestBatchError, ExportError) as exc:
        _render_error(_describe_io_error(exc), console)
        raise typer.Exit(code=EXIT_IO_ERROR) from None

    console.print(
        f"Merged {written} lines into {output_path} (drift ratio {ratio:.4f})"
    )


def _plan_jobs(
    input_paths: list[Path], output_path: Path | None, output_dir: Path | None
) -> list[_FileJob]:
    if output_path is not None and output_dir is not None:
        raise _ConfigError("Use either --output or --output-dir, not both")
    if output_path is not None:
        if len(input_paths) > 1:
            raise _ConfigError("--output accepts a single input; use --output-dir")
        return [_FileJob(input_paths[0], output_path)]
    jobs: list[_FileJob] = []
    for input_path in input_paths:
        directory = output_dir if output_dir is not None else input_path.parent
        jobs.append(
            _FileJob(input_path, directory / f"{input_path.stem}{TRANSLATED_SUFFIX}")
        )
    outputs = [job.output_path for job in jobs]
    if len(set(outputs)) != len(outputs):
        raise _ConfigError("Inputs share a file name; outputs would collide")
    return jobs


async def _translate_queue_async(
    jobs: list[_FileJob],
    *,
    config: RunConfig,
    api_key: str,
    options: _PrepareOptions,
    log_sink: LogSinkProtocol,
    progress_path: Path | None,
    console: Console,
) -> list[_FileOutcome]:
    control = _QueueControl()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, control.request_stop)

    translator = LlmTranslator(
        endpoint=config.endpoint, api_key=api_key, retry=config.provider_retry
    )
    assistant: SubtitleAssistant | None = None
    if options.auto_context or options.auto_glossary or options.detect_language:
        assistant = SubtitleAssistant(
            endpoint=config.endpoint,
            model=config.model,
            api_key=api_key,
            retry=config.provider_retry,
        )

    outcomes: list[_FileOutcome] = []
    try:
        for job in jobs:
            if control.stop_requested:
                break
            outcome = _FileOutcome(job=job)
            try:
                outcome.result, outcome.written = await _translate_file_async(
                    job,
                    config=config,
                    translator=translator,
                    assistant=assistant,
                    options=options,
                    control=control,
                    log_sink=log_sink,
                    progress_path=progress_path,
                    console=console,
                )
            except (IngestError, IngestBatchError, ExportError) as exc:
                outcome.io_error = True
                message = _describe_io_error(exc)
                _render_error(f"{job.input_path.name}: {message}", console)
            finally:
                control.current = None
            outcomes.append(outcome)
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)
    return outcomes


async def _translate_file_async(
    job: _FileJob,
    *,
    config: RunConfig,
    translator: LlmTranslator,
    assistant: SubtitleAssistant | None,
    options: _PrepareOptions,
    control: _QueueControl,
    log_sink: LogSinkProtocol,
    progress_path: Path | None,
    console: Console,
) -> tuple[TranslationRunResult, bool]:
    lines = await JsonlIngestAdapter().load_lines(job.input_path)

    sinks: list[ProgressSinkProtocol] = []
    if progress_path is not None:
        sinks.append(FileSystemProgressSink(progress_path))
    progress: Progress | None = None
    if _should_render_progress():
        progress = _build_progress(console)
        sinks.append(_ProgressReporter(progress))
    progress_sink = CompositeProgressSink(sinks) if sinks else None

    run = TranslationRunContext(run_id=uuid4(), lines=lines)
    control.current = run
    file_config = config
    if assistant is not None:
        try:
            declined = await _confirm_source_language(
                assistant, run, job, options, console
            )
            if declined is not None:
                return declined, False
            file_config = await _prepare_translation(
                assistant, config, job, options, console
            )
        except TranslationError as exc:
            # The pipeline reports the stop like any other terminal failure.
            run.abort(exc.info)

    pipeline = TranslationPipeline(
        translator,
        config=file_config,
        log_sink=log_sink,
        progress_sink=progress_sink,
    )
    if progress is not None:
        with progress:
            result = await pipeline.execute(run)
    else:
        result = await pipeline.execute(run)

    await JsonlExportAdapter().write_lines(job.output_path, pipeline.export_lines(run))
    return result, True


async def _confirm_source_language(
    assistant: SubtitleAssistant,
    run: TranslationRunContext,
    job: _FileJob,
    options: _PrepareOptions,
    console: Console,
) -> TranslationRunResult | None:
    if not options.detect_language:
        return None
    detection = await assistant.detect_language(run.lines)
    if detection.is_english or options.assume_yes:
        return None
    console.print(f"{job.input_path.name}: detected {detection.language}")
    if typer.confirm(f"Detected language: {detection.language}. Continue?"):
        return None
    return TranslationRunResult(
        run_id=run.run_id,
        status=RunStatus.CANCELLED,
        message=f"Cancelled ({detection.language})",
        total_lines=run.total_lines,
        translated_lines=run.translated_count(),
        missing_line_ids=run.missing_line_ids(),
    )


async def _prepare_translation(
    assistant: SubtitleAssistant,
    config: RunConfig,
    job: _FileJob,
    options: _PrepareOptions,
    console: Console,
) -> RunConfig:
    translation = config.translation
    update: dict[str, str] = {}
    if options.auto_context and not translation.context:
        console.print(f"{job.input_path.name}: analyzing plot context...")
        generated = await assistant.generate_context(job.input_path.name)
        if generated:
            update["context"] = generated
    if options.auto_glossary and not translation.glossary:
        console.print(f"{job.input_path.name}: generating glossary...")
        generated = await assistant.generate_glossary(
            job.input_path.name, translation.target_language
        )
        if generated:
            update["glossary"] = generated
    if not update:
        return config
    return config.model_copy(
        update={"translation": translation.model_copy(update=update)}
    )


async def _merge_async(
    config: RunConfig,
    input_path: Path,
    translated_path: Path,
    output_path: Path,
    optimize: bool,
) -> tuple[float, int]:
    adapter = JsonlIngestAdapter()
    source = await adapter.load_lines(input_path)
    translated = await adapter.load_lines(translated_path)
    ratio = estimate_drift_ratio(source, translated)
    merged = merge_translated_track(
        source, translated, optimize=optimize, settings=config.timing
    )
    written = await JsonlExportAdapter().write_lines(output_path, merged)
    return ratio, written


class _ProgressReporter(ProgressSinkProtocol):
    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task: TaskID | None = None

    async def emit_progress(self, update: ProgressUpdate) -> None:
        if self._task is None:
            self._task = self._progress.add_task(update.message, total=100)
        self._progress.update(
            self._task, completed=update.percent, description=update.message
        )
        self._progress.refresh()


def _should_render_progress() -> bool:
    return sys.stderr.isatty()


def _build_progress(console: Console) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


def _load_run_config(config_path: Path | None) -> RunConfig:
    _load_dotenv(config_path)
    if config_path is None:
        return RunConfig()
    if not config_path.exists():
        raise _ConfigError(f"Config not found: {config_path}")
    try:
        with open(config_path, "rb") as handle:
            payload = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise _ConfigError(f"Failed to read config: {exc}") from exc
    return RunConfig.model_validate(payload, strict=False)


def _load_dotenv(config_path: Path | None) -> None:
    if config_path is not None:
        env_path = config_path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
            return
    load_dotenv(override=False)


def _apply_overrides(
    config: RunConfig, target_language: str | None, context: str | None
) -> RunConfig:
    update: dict[str, str] = {}
    if target_language:
        update["target_language"] = target_language
    if context:
        update["context"] = context
    if not update:
        return config
    translation = config.translation.model_copy(update=update)
    return config.model_copy(update={"translation": translation})


def _resolve_api_key(config: RunConfig) -> str:
    api_key = os.getenv(config.endpoint.api_key_env)
    if not api_key:
        raise _ConfigError(
            f"Missing API key: set {config.endpoint.api_key_env} in the environment"
        )
    return api_key


def _describe_io_error(exc: IngestError | IngestBatchError | ExportError) -> str:
    if isinstance(exc, IngestBatchError):
        details = "; ".join(info.describe() for info in exc.errors[:5])
        return f"Ingest failed with {len(exc.errors)} errors: {details}"
    if isinstance(exc, IngestError):
        return f"Ingest failed: {exc.info.describe()}"
    return f"Export failed: {exc.info.message}"


def _render_run_summary(
    result: TranslationRunResult, output_path: Path | None, console: Console
) -> None:
    table = Table.grid(padding=(0, 1))
    table.add_column(justify="right", style="bold")
    table.add_column()
    table.add_row("Run ID", str(result.run_id))
    table.add_row("Status", str(result.status))
    table.add_row("Message", result.message)
    table.add_row("Translated", f"{result.translated_lines}/{result.total_lines}")
    if result.missing_count:
        preview = ", ".join(str(line_id) for line_id in result.missing_line_ids[:10])
        table.add_row("Missing", f"{result.missing_count} (ids {preview})")
    if output_path is not None:
        table.add_row("Output", str(output_path))
    console.print(Panel(table, title="dualsub run", expand=False))


def _render_error(message: str, console: Console) -> None:
    console.print(f"[red]Error:[/red] {message}")
