"""Command-line interface for shorts-generator.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from shorts_generator import __version__
from shorts_generator.binaries import ToolConfig, get_dependency_report
from shorts_generator.config import (
    AppConfig,
    PipelineSettings,
    SubtitleConfig,
    TranscriptionBackend,
    VideoConfig,
)
from shorts_generator.errors import ConfigurationError, ShortsGeneratorError, format_error_for_display
from shorts_generator.logging import LogConfig, LogLevel, configure_logging, enable_file_logging
from shorts_generator.pipeline import PipelineResult, ShortsPipeline, SubtitleStatus

# Tool overrides (SHORTS_GENERATOR_FFMPEG, ...) may live in a local .env
load_dotenv()

app = typer.Typer(
    name="shorts-generator",
    help="Turn long-form video into a short clip with burned-in subtitles.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

STAGE_LABELS = {
    "probe": "Reading source video",
    "window": "Resolving clip window",
    "extract": "Extracting clip and audio",
    "transcribe": "Transcribing audio",
    "cues": "Building subtitles",
    "render": "Rendering output",
    "publish": "Publishing",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"shorts-generator version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show stage progress logs")] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug logs, including FFmpeg commands")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only show errors")] = False,
    log_file: Annotated[
        Optional[Path], typer.Option("--log-file", help="Also write all logs to this file")
    ] = None,
    json_logs: Annotated[bool, typer.Option("--json-logs", help="Emit logs as JSON lines")] = False,
    prefer_system_ffmpeg: Annotated[
        bool, typer.Option("--prefer-system-ffmpeg", help="Use FFmpeg from PATH over the bundled binary")
    ] = False,
) -> None:
    """Shorts Generator - cut a short from a long video.

    [bold]generate[/bold]: build a short from command-line options.

    [bold]configure[/bold] + [bold]run-from-file[/bold]: save options to JSON once, rerun later.
    """
    if debug:
        level = LogLevel.DEBUG
    elif verbose:
        level = LogLevel.VERBOSE
    elif quiet:
        level = LogLevel.QUIET
    else:
        level = LogLevel.NORMAL

    configure_logging(LogConfig(level=level, json_format=json_logs))
    if log_file:
        try:
            enable_file_logging(log_file)
        except OSError as e:
            _fail(ConfigurationError(f"Cannot open log file {log_file}: {e}"))
    ctx.obj = ToolConfig.from_env(prefer_system=prefer_system_ffmpeg)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(format_error_for_display(error))}")
    raise typer.Exit(1)


def _build_config(
    input_path: Path,
    output_path: Path,
    duration: float,
    start: float,
    width: int | None,
    height: int | None,
    subtitles: bool,
    model: str | None,
    font: Path | None,
    font_size: int,
    font_color: str,
    vertical: str,
    horizontal: str,
    backend: TranscriptionBackend,
    language: str | None,
    srt: bool,
    keep_temp: bool,
) -> AppConfig:
    try:
        return AppConfig(
            video=VideoConfig(
                input_path=input_path,
                output_path=output_path,
                short_duration_secs=duration,
                start_offset_secs=start,
                output_width=width,
                output_height=height,
            ),
            subtitles=SubtitleConfig(
                use_subtitles=subtitles,
                whisper_model_path=model,
                font_path=font,
                font_size=font_size,
                font_color=font_color,
                vertical_alignment=vertical,
                horizontal_alignment=horizontal,
                transcription_backend=backend,
                language=language,
                write_srt=srt,
            ),
            pipeline=PipelineSettings(keep_temp=keep_temp),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid options: {e}") from e


def _run_pipeline(config: AppConfig, tools: ToolConfig | None) -> PipelineResult:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting", total=None)

        def on_stage(stage: str) -> None:
            progress.update(task, description=STAGE_LABELS.get(stage, stage))

        pipeline = ShortsPipeline(config, tools=tools, on_stage=on_stage)
        return pipeline.run()


def _report(result: PipelineResult) -> None:
    window = result.window
    console.print(f"[green]Short created:[/green] {result.output_path}")
    console.print(
        f"  Window: {window.start:.2f}s - {window.end:.2f}s ({window.duration:.2f}s)"
        + (" [yellow](clamped to source length)[/yellow]" if window.clamped else "")
    )

    if result.subtitles == SubtitleStatus.BURNED:
        console.print(f"  Subtitles: {result.cue_count} cues burned in")
    elif result.subtitles == SubtitleStatus.DEGRADED:
        console.print(
            f"  [yellow]Subtitles skipped:[/yellow] {escape(result.degraded_reason or 'no speech found')}"
        )
    elif result.subtitles == SubtitleStatus.EMPTY:
        console.print("  [yellow]Subtitles skipped:[/yellow] no speech inside the clip window")
    else:
        console.print("  Subtitles: disabled")

    if result.sidecar_path:
        console.print(f"  SRT: {result.sidecar_path}")


# Shared options of generate and configure
InputOpt = Annotated[Path, typer.Option("--input-path", "-i", help="Source video")]
OutputOpt = Annotated[Path, typer.Option("--output-path", "-o", help="Where to write the short")]
DurationOpt = Annotated[float, typer.Option("--duration", "-d", help="Length of the short in seconds")]
StartOpt = Annotated[float, typer.Option("--start", help="Offset into the source in seconds")]
WidthOpt = Annotated[Optional[int], typer.Option("--width", help="Output width in pixels")]
HeightOpt = Annotated[Optional[int], typer.Option("--height", help="Output height in pixels")]
SubtitlesOpt = Annotated[
    bool, typer.Option("--subtitles/--no-subtitles", help="Burn in generated subtitles")
]
ModelOpt = Annotated[
    Optional[str], typer.Option("--whisper-model", "-m", help="Whisper model name or path")
]
FontOpt = Annotated[Optional[Path], typer.Option("--font", help="Font file (.ttf/.otf)")]
FontSizeOpt = Annotated[int, typer.Option("--font-size", help="Font size in pixels")]
FontColorOpt = Annotated[str, typer.Option("--font-color", help="Colour name or #RRGGBB")]
VerticalOpt = Annotated[str, typer.Option("--vertical-alignment", help="top, center or bottom")]
HorizontalOpt = Annotated[str, typer.Option("--horizontal-alignment", help="left, center or right")]
BackendOpt = Annotated[
    TranscriptionBackend, typer.Option("--backend", help="Whisper implementation to use")
]
LanguageOpt = Annotated[Optional[str], typer.Option("--language", help="Spoken language code")]
SrtOpt = Annotated[bool, typer.Option("--srt", help="Also write the subtitles as .srt")]
KeepTempOpt = Annotated[bool, typer.Option("--keep-temp", help="Keep temporary files")]


@app.command()
def generate(
    ctx: typer.Context,
    input_path: InputOpt,
    output_path: OutputOpt,
    duration: DurationOpt = 60.0,
    start: StartOpt = 0.0,
    width: WidthOpt = None,
    height: HeightOpt = None,
    subtitles: SubtitlesOpt = True,
    whisper_model: ModelOpt = None,
    font: FontOpt = None,
    font_size: FontSizeOpt = 24,
    font_color: FontColorOpt = "white",
    vertical_alignment: VerticalOpt = "bottom",
    horizontal_alignment: HorizontalOpt = "center",
    backend: BackendOpt = TranscriptionBackend.CLI,
    language: LanguageOpt = None,
    srt: SrtOpt = False,
    keep_temp: KeepTempOpt = False,
) -> None:
    """Generate a short from a video."""
    try:
        config = _build_config(
            input_path, output_path, duration, start, width, height,
            subtitles, whisper_model, font, font_size, font_color,
            vertical_alignment, horizontal_alignment, backend, language, srt, keep_temp,
        )
        result = _run_pipeline(config, ctx.obj)
    except ShortsGeneratorError as e:
        _fail(e)
    _report(result)


@app.command()
def configure(
    output_config_path: Annotated[
        Path, typer.Option("--output-config-path", help="Where to save the JSON configuration")
    ],
    input_path: InputOpt,
    output_path: OutputOpt,
    duration: DurationOpt = 60.0,
    start: StartOpt = 0.0,
    width: WidthOpt = None,
    height: HeightOpt = None,
    subtitles: SubtitlesOpt = True,
    whisper_model: ModelOpt = None,
    font: FontOpt = None,
    font_size: FontSizeOpt = 24,
    font_color: FontColorOpt = "white",
    vertical_alignment: VerticalOpt = "bottom",
    horizontal_alignment: HorizontalOpt = "center",
    backend: BackendOpt = TranscriptionBackend.CLI,
    language: LanguageOpt = None,
    srt: SrtOpt = False,
    keep_temp: KeepTempOpt = False,
) -> None:
    """Validate options and save them as a JSON configuration file."""
    try:
        config = _build_config(
            input_path, output_path, duration, start, width, height,
            subtitles, whisper_model, font, font_size, font_color,
            vertical_alignment, horizontal_alignment, backend, language, srt, keep_temp,
        )
        saved = config.save(output_config_path)
    except ShortsGeneratorError as e:
        _fail(e)
    console.print(f"[green]Configuration saved:[/green] {saved}")


@app.command()
def run_from_file(
    ctx: typer.Context,
    config_path: Annotated[Path, typer.Option("--config-path", "-c", help="JSON configuration file")],
) -> None:
    """Generate a short from a saved configuration file."""
    try:
        config = AppConfig.load(config_path)
        result = _run_pipeline(config, ctx.obj)
    except ShortsGeneratorError as e:
        _fail(e)
    _report(result)


@app.command()
def check_deps(ctx: typer.Context) -> None:
    """Check and report on external tools.

    FFmpeg and FFprobe are required; the whisper CLI is needed for the
    default transcription backend.
    """
    report = get_dependency_report(ctx.obj)

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    labels = {"ffmpeg": "FFmpeg", "ffprobe": "FFprobe", "whisper": "Whisper CLI"}
    hints = {
        "ffmpeg": "Install with: pip install imageio-ffmpeg",
        "ffprobe": "Install FFmpeg (includes ffprobe) and add it to PATH",
        "whisper": "Install with: pip install openai-whisper",
    }
    for tool, label in labels.items():
        info = report[tool]
        if info["available"]:
            table.add_row(
                label,
                f"[green]Available[/green] ({info['version']})",
                f"Source: {info['source']}\n{info['path']}",
            )
        else:
            table.add_row(label, "[red]Not Found[/red]", hints[tool])

    bundled = report["imageio_ffmpeg"]
    table.add_row(
        "imageio-ffmpeg",
        "[green]Installed[/green]" if bundled["available"] else "[yellow]Not installed[/yellow]",
        str(bundled.get("version", "")),
    )

    platform_info = report["platform"]
    table.add_row(
        "Platform",
        str(platform_info["system"]),
        f"{platform_info['machine']}, Python {platform_info['python']}",
    )
    console.print(table)

    if not (report["ffmpeg"]["available"] and report["ffprobe"]["available"]):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
