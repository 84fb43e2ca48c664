import signal
import typer
from pathlib import Path
from typing import Dict, List, Optional

from vconv.config.models import AppConfig
from vconv.config.settings import DEFAULT_CONFIG_FILE, SettingsManager
from vconv.domain.errors import ConversionError, RenditionNotOffered
from vconv.domain.events import CancelRequested
from vconv.domain.models import AUDIO_BITRATES, Rendition
from vconv.infrastructure.event_bus import EventBus
from vconv.infrastructure.ffmpeg import FFmpegAdapter, check_ffmpeg_installed
from vconv.infrastructure.ffprobe import FFprobeAdapter
from vconv.infrastructure.file_scanner import FileScanner
from vconv.infrastructure.logging import setup_logging
from vconv.pipeline.naming import resolve_custom_name
from vconv.pipeline.orchestrator import ConversionOrchestrator
from vconv.pipeline.quality import parse_rendition
from vconv.ui.formatting import format_duration, format_file_size
from vconv.ui.messages import Messages
from vconv.ui.progress_view import ProgressView

app = typer.Typer(help="vconv - convert a video into 1080p/720p/480p MP4 renditions and MP3 audio with ffmpeg")
settings_app = typer.Typer(help="Show or change the persisted settings")
app.add_typer(settings_app, name="settings")

CONFIG_OPTION = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Path to YAML settings file")


def _fail(message: str, code: int = 1):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _build_orchestrator(config: AppConfig, manager: SettingsManager, bus: EventBus) -> ConversionOrchestrator:
    return ConversionOrchestrator(
        settings_provider=manager,
        event_bus=bus,
        ffprobe_adapter=FFprobeAdapter(ffprobe_path=config.ffprobe_path),
        ffmpeg_adapter=FFmpegAdapter(ffmpeg_path=config.ffmpeg_path, debug=config.debug),
    )


def _parse_names(input_path: Path, entries: List[str], selected: List[Rendition]) -> Dict[Rendition, Path]:
    output_paths: Dict[Rendition, Path] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid --name {entry!r}, expected QUALITY=FILENAME")
        quality, filename = entry.split("=", 1)
        rendition = parse_rendition(quality)
        if rendition not in selected:
            raise ValueError(f"--name given for {rendition.value}, which is not being converted")
        output_paths[rendition] = resolve_custom_name(input_path, filename, rendition)
    return output_paths


@app.command()
def convert(
    file: Path = typer.Argument(..., help="Video file to convert"),
    quality: Optional[List[str]] = typer.Option(
        None, "--quality", "-q", help="Rendition to produce (1080p, 720p, 480p, audio); repeatable. Default: all offered"
    ),
    name: Optional[List[str]] = typer.Option(
        None, "--name", "-n", help="Custom output name per rendition, e.g. 720p=clip_hd.mp4; repeatable"
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace existing output files"),
    config_path: Path = CONFIG_OPTION,
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Convert one video file into the selected renditions, one after another."""
    manager = SettingsManager(config_path)
    config = manager.get_config()
    if debug:
        config.debug = True
    messages = Messages(config.language)

    log_path = Path(config.log_path) if config.log_path else None
    logger = setup_logging(manager.config_dir, debug=config.debug, log_path=log_path)

    try:
        if not file.is_file():
            _fail(f"{file} does not exist or is not a file")
        if not check_ffmpeg_installed(config.ffmpeg_path):
            _fail(messages.t("ffmpeg_missing", config=manager.config_path))

        bus = EventBus()
        orchestrator = _build_orchestrator(config, manager, bus)

        try:
            descriptor = orchestrator.probe(file)
        except ConversionError as exc:
            _fail(str(exc))

        typer.secho(
            messages.t(
                "probed",
                name=descriptor.display_name,
                width=descriptor.width,
                height=descriptor.height,
                size=format_file_size(descriptor.size_bytes),
                duration=format_duration(descriptor.duration_seconds),
            ),
            fg=typer.colors.GREEN,
        )

        try:
            requested = [parse_rendition(q) for q in quality] if quality else None
            selected = orchestrator.select(descriptor, requested)
            output_paths = _parse_names(file, name or [], selected)
        except RenditionNotOffered as exc:
            _fail(messages.t("not_offered", quality=", ".join(exc.renditions), height=exc.height))
        except ValueError as exc:
            _fail(str(exc))

        tasks = orchestrator.plan(descriptor, selected, output_paths)

        planned = [task.output_path.resolve() for task in tasks]
        if len(set(planned)) != len(planned):
            _fail("Two renditions would be written to the same file; pass distinct --name values")
        if descriptor.path.resolve() in planned:
            _fail("An output name points at the source file itself")
        if not overwrite:
            for task in tasks:
                if task.output_path.exists():
                    _fail(messages.t("output_exists", path=task.output_path))

        logger.info(
            f"CONVERT: {descriptor.display_name} -> {[t.rendition.value for t in tasks]} "
            f"audio={config.audio_bitrate}k"
        )

        def _on_sigint(signum, frame):
            bus.publish(CancelRequested(reason="SIGINT"))

        previous_handler = signal.signal(signal.SIGINT, _on_sigint)
        try:
            with ProgressView(bus, messages=messages) as view:
                report = orchestrator.run(descriptor, tasks)
            view.print_summary(report)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        if report.aborted:
            raise typer.Exit(code=130)
        if report.failed:
            raise typer.Exit(code=1)

    except KeyboardInterrupt:
        typer.secho(f"\n{messages.t('cancelled')}", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        logger.exception("Fatal error")
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("list")
def list_files(
    directory: Path = typer.Argument(Path("."), help="Directory to look for video files in"),
    config_path: Path = CONFIG_OPTION,
):
    """List the video files in a directory."""
    messages = Messages(SettingsManager(config_path).get_config().language)
    if not directory.is_dir():
        _fail(f"{directory} does not exist or is not a directory")
    files = FileScanner().scan(directory)
    if not files:
        _fail(messages.t("no_files", directory=directory))
    for path in files:
        typer.echo(f"{path.name}  ({format_file_size(path.stat().st_size)})")


@app.command()
def probe(
    file: Path = typer.Argument(..., help="Video file to inspect"),
    config_path: Path = CONFIG_OPTION,
):
    """Show dimensions, duration and bitrate, and the renditions on offer."""
    manager = SettingsManager(config_path)
    config = manager.get_config()
    messages = Messages(config.language)
    if not file.is_file():
        _fail(f"{file} does not exist or is not a file")

    orchestrator = _build_orchestrator(config, manager, EventBus())
    try:
        descriptor = orchestrator.probe(file)
    except ConversionError as exc:
        _fail(str(exc))

    typer.echo(
        messages.t(
            "probed",
            name=descriptor.display_name,
            width=descriptor.width,
            height=descriptor.height,
            size=format_file_size(descriptor.size_bytes),
            duration=format_duration(descriptor.duration_seconds),
        )
    )
    typer.echo(f"Bitrate: {descriptor.source_bitrate // 1000} Kbps")
    qualities = ", ".join(r.label for r in orchestrator.offer(descriptor))
    typer.echo(messages.t("offered", qualities=qualities))


@settings_app.command("show")
def settings_show(config_path: Path = CONFIG_OPTION):
    """Print the current settings."""
    manager = SettingsManager(config_path)
    config = manager.get_config()
    typer.echo(f"Config file: {manager.config_path}")
    typer.echo(f"Language: {config.language}")
    for tier, kbps in config.video_bitrates.items():
        typer.echo(f"Video {tier.value}: {kbps} Kbps")
    typer.echo(f"Audio (MP3): {config.audio_bitrate} Kbps")


@settings_app.command("video-bitrate")
def settings_video_bitrate(
    tier: str = typer.Argument(..., help="2160p (or 4k), 1080p, 720p or 480p"),
    kbps: int = typer.Argument(..., help="Bitrate in Kbps (900-10000, step 100)"),
    config_path: Path = CONFIG_OPTION,
):
    """Set the video bitrate of one quality tier."""
    manager = SettingsManager(config_path)
    messages = Messages(manager.get_config().language)
    try:
        stored = manager.set_video_bitrate(tier, kbps)
    except ValueError as exc:
        _fail(str(exc))
    if stored != kbps:
        typer.secho(messages.t("bitrate_adjusted", tier=tier, requested=kbps, stored=stored), fg=typer.colors.YELLOW)
    typer.secho(messages.t("settings_saved"), fg=typer.colors.GREEN)


@settings_app.command("audio-bitrate")
def settings_audio_bitrate(
    kbps: int = typer.Argument(..., help=f"MP3 bitrate in Kbps, one of {', '.join(map(str, AUDIO_BITRATES))}"),
    config_path: Path = CONFIG_OPTION,
):
    """Set the MP3 bitrate used for audio extraction."""
    manager = SettingsManager(config_path)
    messages = Messages(manager.get_config().language)
    try:
        manager.set_audio_bitrate(kbps)
    except ValueError as exc:
        _fail(str(exc))
    typer.secho(messages.t("settings_saved"), fg=typer.colors.GREEN)


@settings_app.command("language")
def settings_language(
    language: str = typer.Argument(..., help="ru or en"),
    config_path: Path = CONFIG_OPTION,
):
    """Set the language of CLI messages."""
    manager = SettingsManager(config_path)
    try:
        manager.set_language(language)
    except ValueError as exc:
        _fail(str(exc))
    typer.secho(Messages(language).t("settings_saved"), fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
