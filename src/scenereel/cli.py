"""CLI entry point for the scene reel renderer."""

import logging
import typer
from pathlib import Path
from typing import Optional
from enum import Enum

from . import __version__
from .models import Manifest

app = typer.Typer(
    name="scene-reel",
    help="Frame-accurate renderer for narrated scene slideshows",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"scene-reel version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Scene Reel - Render narrated scenes into video frames."""
    pass


def load_manifest(script: Path) -> Manifest:
    """Load a manifest or exit with an error message."""
    if not script.exists():
        typer.echo(f"❌ No manifest found at {script}")
        raise typer.Exit(1)

    try:
        return Manifest.from_yaml(script)
    except Exception as e:
        typer.echo(f"❌ Error loading manifest: {e}")
        raise typer.Exit(1)


def load_composition(script: Path):
    """Build a composition from the ready scenes of a manifest."""
    from .editor import Composition

    manifest = load_manifest(script)
    return manifest, Composition(manifest.ready_scenes(), manifest.settings)


SCRIPT_OPTION = typer.Option(
    Path("manifest.yaml"),
    "--script",
    "-s",
    help="Path to the render manifest YAML file",
    file_okay=True,
    dir_okay=False
)


@app.command()
def status(script: Path = SCRIPT_OPTION) -> None:
    """Show project status and the scene timeline."""
    from .editor import build_timeline

    manifest = load_manifest(script)
    ready = manifest.ready_scenes()
    timeline = build_timeline(ready)
    width, height = manifest.settings.resolution

    typer.echo(f"📁 Project: {manifest.project_name}")
    typer.echo(f"   Aspect ratio: {manifest.settings.aspect_ratio.value} ({width}x{height})")
    typer.echo(f"   Scenes: {len(ready)} ready / {len(manifest.scenes)} total")
    typer.echo(f"   Total frames: {timeline.total_frames} ({timeline.duration_seconds:.2f}s)")

    if timeline.is_empty:
        typer.echo("\n⏳ No renderable scenes - a placeholder will be rendered")
        return

    typer.echo("\n📽️  Timeline:")
    for window in timeline.windows:
        scene = window.scene
        icon = "✅" if scene.media_ref else "⏳"
        typer.echo(
            f"   {icon} {scene.id}: frames [{window.start_frame}, {window.end_frame}) "
            f"{window.frame_count} frames"
        )
        if scene.text:
            preview = scene.text[:60] + "..." if len(scene.text) > 60 else scene.text
            typer.echo(f"      → {preview}")

    for scene in timeline.skipped:
        typer.echo(f"   ⚠️  {scene.id}: skipped (duration {scene.effective_duration})")


@app.command()
def frame(
    index: int = typer.Argument(
        ...,
        help="Global frame index to render",
        min=0
    ),
    script: Path = SCRIPT_OPTION,
    output: Path = typer.Option(
        Path("frame.png"),
        "--output",
        "-o",
        help="Output PNG path"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Render a single frame to a PNG image."""
    setup_logging(verbose)
    _, composition = load_composition(script)

    if index >= composition.total_frames:
        typer.echo(f"❌ Frame {index} is past the end ({composition.total_frames} frames)")
        raise typer.Exit(1)

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        composition.render_image(index).save(output)
    except Exception as e:
        typer.echo(f"❌ Error rendering frame {index}: {e}")
        raise typer.Exit(1)
    finally:
        composition.close()

    typer.echo(f"✅ Frame {index} saved: {output}")


@app.command()
def render(
    script: Path = SCRIPT_OPTION,
    output: Path = typer.Option(
        Path("./frames"),
        "--output",
        "-o",
        help="Output directory for numbered PNG frames"
    ),
    start: int = typer.Option(
        0,
        "--start",
        help="First frame to render (inclusive)",
        min=0
    ),
    end: Optional[int] = typer.Option(
        None,
        "--end",
        help="Last frame to render (exclusive); defaults to the end"
    ),
    parallel: int = typer.Option(
        1,
        "--parallel",
        "-p",
        help="Number of frames rendered concurrently",
        min=1,
        max=32
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Render a frame range to numbered PNG images.

    Frames are independent of each other, so a long project can be split
    into ranges and rendered by several workers.
    """
    from PIL import Image
    from .editor import CompositionStatus, RenderJob

    setup_logging(verbose)
    manifest, composition = load_composition(script)

    try:
        job = RenderJob(composition, start=start, end=end)
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    typer.echo(f"🎬 Rendering {manifest.project_name}")
    typer.echo(f"   Frames: [{job.start}, {job.end}) of {composition.total_frames}")
    typer.echo(f"   Resolution: {composition.width}x{composition.height}")

    state = composition.status
    if state != CompositionStatus.OK:
        typer.echo(f"⚠️  Composition status: {state.value}")

    output.mkdir(parents=True, exist_ok=True)
    digits = max(6, len(str(composition.total_frames)))

    def write_frame(index: int, pixels) -> None:
        Image.fromarray(pixels).save(output / f"frame_{index:0{digits}d}.png")

    try:
        rendered = job.run(write_frame, parallel=parallel)
    except Exception as e:
        typer.echo(f"❌ Error rendering frames: {e}")
        raise typer.Exit(1)
    finally:
        composition.close()

    typer.echo(f"✅ Rendered {rendered} frames to {output}")


class OutputQuality(str, Enum):
    """Output quality presets."""
    DRAFT = "draft"
    FINAL = "final"


@app.command()
def export(
    script: Path = SCRIPT_OPTION,
    output: Path = typer.Option(
        Path("output/final.mp4"),
        "--output",
        "-o",
        help="Output file path"
    ),
    quality: OutputQuality = typer.Option(
        OutputQuality.FINAL,
        "--quality",
        "-q",
        help="Output quality preset"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Render the full project with narration and hand it to the encoder."""
    from .editor import CompositionStatus
    from .editor import export as export_video

    setup_logging(verbose)
    manifest, composition = load_composition(script)

    state = composition.status
    if state == CompositionStatus.FAILED:
        typer.echo("❌ Every scene failed to load, nothing to export")
        composition.close()
        raise typer.Exit(1)
    if state != CompositionStatus.OK:
        typer.echo(f"⚠️  Composition status: {state.value}")

    encoding_params = {
        "preset": "medium" if quality == OutputQuality.FINAL else "ultrafast",
        "bitrate": "8000k" if quality == OutputQuality.FINAL else "3000k",
    }

    typer.echo(f"📼 Exporting {manifest.project_name} to {output} ({quality.value} quality)...")
    try:
        export_video(composition, output, **encoding_params)
    except Exception as e:
        typer.echo(f"❌ Error exporting video: {e}")
        raise typer.Exit(1)
    finally:
        composition.close()

    typer.echo(f"✅ Video exported: {output}")
    typer.echo(f"   Duration: {composition.timeline.duration_seconds:.1f}s")
    typer.echo(f"   Resolution: {composition.width}x{composition.height}")


if __name__ == "__main__":
    app()
