"""Command-line interface for asr-rag.

Uses Typer for a type-hinted CLI. Command results go to stdout;
diagnostics and logs go to stderr. Any pipeline error exits with
status 1 after a single diagnostic line.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Iterator, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

load_dotenv()

from asr_rag import __version__
from asr_rag.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_CORPUS_PATH,
    AppConfig,
    CorpusEntry,
    load_config,
    load_corpus,
)
from asr_rag.errors import AsrRagError, Stage, StageContext, format_error_for_display
from asr_rag.llm import OllamaClient, OllamaCorrector, OllamaEmbedder
from asr_rag.logging import LogConfig, LogLevel, configure_logging
from asr_rag.pipeline import CorrectionPipeline, CorrectionResult
from asr_rag.recorder import DEFAULT_SECONDS, parse_seconds, recording
from asr_rag.seeding import seed_corpus
from asr_rag.transcription import TranscriptionProvider, get_transcription_provider
from asr_rag.vector import QdrantTermIndex, SearchResult

app = typer.Typer(
    name="asr-rag",
    help="Transcribe speech and fix misheard jargon using a glossary vector index.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    """Paths chosen on the command line, shared with subcommands."""

    config_path: Path = DEFAULT_CONFIG_PATH
    corpus_path: Path = DEFAULT_CORPUS_PATH


# Factories are module-level so tests can patch them
def build_embedder(config: AppConfig) -> OllamaEmbedder:
    return OllamaEmbedder(OllamaClient(config.ollama_url, timeout=config.timeout), config.embedding_model)


def build_corrector(config: AppConfig) -> OllamaCorrector:
    return OllamaCorrector(OllamaClient(config.ollama_url, timeout=config.timeout), config.correction_model)


def build_transcriber(config: AppConfig) -> TranscriptionProvider:
    return get_transcription_provider(config)


def open_index(config: AppConfig) -> QdrantTermIndex:
    return QdrantTermIndex(
        config.qdrant_url,
        collection_name=config.collection_name,
        dimension=config.embedding_dimension,
        timeout=config.timeout,
    )


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn pipeline errors into a one-line diagnostic and an exit status."""
    try:
        yield
    except AsrRagError as e:
        err_console.print(escape(format_error_for_display(e)), soft_wrap=True)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("cancelled")
        raise typer.Exit(130)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"asr-rag version {__version__}")
        raise typer.Exit()


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _print_terms(terms: list[SearchResult]) -> None:
    if not terms:
        console.print("context terms: (none)")
        return
    console.print("context terms:")
    for t in terms:
        console.print(f"  • {escape(t.term)} — {escape(t.definition)}", soft_wrap=True)


def _print_correction(result: CorrectionResult) -> None:
    _print_terms(result.terms)
    console.print(f"corrected: {escape(result.corrected_text)}", soft_wrap=True)


def _print_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _transcribe_and_correct(config: AppConfig, audio_path: Path, as_json: bool = False) -> None:
    transcriber = build_transcriber(config)
    with StageContext(Stage.TRANSCRIBE, provider=transcriber.name):
        transcript = transcriber.transcribe(audio_path)
    if not as_json:
        console.print(f"raw: {escape(transcript.text)}", soft_wrap=True)

    with open_index(config) as index:
        pipeline = CorrectionPipeline(
            build_embedder(config),
            index,
            build_corrector(config),
            correction_limit=config.correction_limit,
        )
        result = pipeline.correct_transcript(transcript.text)

    if as_json:
        _print_json({"transcription": transcript.to_dict(), **result.to_dict()})
    else:
        _print_correction(result)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help="Path to the service config JSON file"),
    ] = DEFAULT_CONFIG_PATH,
    corpus: Annotated[
        Path,
        typer.Option("--corpus", help="Path to the glossary corpus JSON file"),
    ] = DEFAULT_CORPUS_PATH,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress to stderr"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Log everything, including requests"),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines"),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write full debug logs to this file"),
    ] = None,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """ASR RAG - speech-to-text with glossary-grounded jargon correction.

    [bold]seed[/bold] loads the glossary into the vector store once.
    [bold]search[/bold], [bold]transcribe[/bold], [bold]record[/bold] and [bold]correct[/bold] use it.
    """
    level = LogLevel.DEBUG if debug else LogLevel.VERBOSE if verbose else LogLevel.NORMAL
    configure_logging(LogConfig(level=level, json_format=json_logs, log_file=log_file))
    ctx.obj = CliState(config_path=config, corpus_path=corpus)


@app.command()
def seed(ctx: typer.Context) -> None:
    """Embed the glossary corpus and upsert it into the vector store.

    Safe to re-run: ids are corpus positions, so records are overwritten.
    """
    state = _state(ctx)

    def on_seeded(point_id: int, entry: CorpusEntry) -> None:
        console.print(f"seeded: {escape(entry.term)}", soft_wrap=True)

    with handle_errors():
        config = load_config(state.config_path)
        entries = load_corpus(state.corpus_path)

        with open_index(config) as index:
            count = seed_corpus(entries, build_embedder(config), index, on_seeded=on_seeded)

    console.print(f"done: {count} terms seeded")


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Phrase to search the glossary for")],
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", min=1, help="Maximum number of results"),
    ] = None,
) -> None:
    """Search the glossary for terms similar to a phrase."""
    state = _state(ctx)

    with handle_errors():
        config = load_config(state.config_path)
        k = limit or config.search_limit

        with open_index(config) as index:
            results = CorrectionPipeline(build_embedder(config), index).search_terms(query, k)

    if not results:
        console.print(f"No matching terms for '{escape(query)}'")
        return

    table = Table(title=f"Terms similar to '{escape(query)}'")
    table.add_column("Score", style="green", justify="right")
    table.add_column("Term", style="cyan")
    table.add_column("Definition")

    for r in results:
        table.add_row(f"{r.score:.4f}", escape(r.term), escape(r.definition))

    console.print(table)


@app.command()
def transcribe(
    ctx: typer.Context,
    audio_file: Annotated[Path, typer.Argument(help="WAV file (16 kHz mono 16-bit PCM)")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Transcribe a WAV file and correct jargon in the transcript."""
    state = _state(ctx)

    with handle_errors():
        config = load_config(state.config_path)
        _transcribe_and_correct(config, audio_file, as_json=as_json)


@app.command()
def record(
    ctx: typer.Context,
    seconds: Annotated[
        Optional[str],
        typer.Argument(help=f"Seconds to record (default {DEFAULT_SECONDS})"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Record from the microphone, transcribe, and correct."""
    state = _state(ctx)

    with handle_errors():
        duration = parse_seconds(seconds)
        config = load_config(state.config_path)

        progress = err_console if as_json else console
        progress.print(f"recording {duration} seconds...")
        with recording(duration) as wav_path:
            progress.print("recording done")
            _transcribe_and_correct(config, wav_path, as_json=as_json)


@app.command()
def correct(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Transcript text to correct")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Correct jargon in text that is already transcribed."""
    state = _state(ctx)

    with handle_errors():
        config = load_config(state.config_path)

        with open_index(config) as index:
            pipeline = CorrectionPipeline(
                build_embedder(config),
                index,
                build_corrector(config),
                correction_limit=config.correction_limit,
            )
            result = pipeline.correct_transcript(text)

    if as_json:
        _print_json(result.to_dict())
    else:
        _print_correction(result)


@app.command()
def check(ctx: typer.Context) -> None:
    """Check that the configured services are reachable."""
    state = _state(ctx)

    with handle_errors():
        config = load_config(state.config_path)

        table = Table(title="Service Status")
        table.add_column("Service", style="cyan")
        table.add_column("Endpoint")
        table.add_column("Status")

        all_ok = True

        ollama = OllamaClient(config.ollama_url, timeout=config.timeout)
        if ollama.is_available():
            models = ollama.available_models()
            missing = [
                m for m in (config.embedding_model, config.correction_model)
                if not any(name == m or name.split(":")[0] == m for name in models)
            ]
            status = "[green]OK[/green]"
            if missing:
                status = f"[yellow]missing models: {escape(', '.join(missing))}[/yellow]"
        else:
            status = "[red]unreachable[/red]"
            all_ok = False
        table.add_row("ollama", escape(config.ollama_url), status)

        with open_index(config) as index:
            if index.is_available():
                if index.collection_name in index.list_collections():
                    status = f"[green]OK[/green] ({index.count()} terms)"
                else:
                    status = "[yellow]no collection, run seed[/yellow]"
            else:
                status = "[red]unreachable[/red]"
                all_ok = False
        table.add_row("qdrant", escape(config.qdrant_url), status)

        transcriber = build_transcriber(config)
        if transcriber.is_available():
            status = "[green]OK[/green]"
        else:
            status = "[red]unavailable[/red]"
            all_ok = False
        table.add_row(transcriber.name, escape(config.whisper_url), status)

    console.print(table)

    if not all_ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
