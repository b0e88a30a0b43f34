"""PinchDraw CLI.

Usage:
    pinchdraw replay     Feed a recorded session through the pipeline
    pinchdraw config     Write a configuration file from a preset
    pinchdraw benchmark  Time the pipeline on a synthetic session
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="pinchdraw",
    help="✏️  Turn hand-landmark streams into drawing commands.",
    add_completion=False,
)


def _load_config(config_path: Optional[str], preset: Optional[str]):
    from pinchdraw.config import EngineConfig

    if config_path:
        path = Path(config_path)
        if not path.exists():
            typer.echo(f"❌ Config not found: {config_path}", err=True)
            raise typer.Exit(1)
        return EngineConfig.from_yaml(path)
    if preset:
        return EngineConfig.preset(preset)
    return EngineConfig()


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to a .json or .npz recording"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    preset: Optional[str] = typer.Option(None, help="Filter preset (ignored with --config)"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier for --realtime"),
    commands: bool = typer.Option(True, help="Print each command as a JSON line"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recorded session and print the resulting drawing commands."""
    from pinchdraw.canvas import StrokeCanvas
    from pinchdraw.pipeline import DrawingPipeline
    from pinchdraw.recorder import SessionPlayer

    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if not speed > 0:
        typer.echo(f"❌ --speed must be positive, got {speed}", err=True)
        raise typer.Exit(1)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    try:
        cfg = _load_config(config, preset)
        player = SessionPlayer.load(path)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)", err=True)

    canvas = StrokeCanvas()
    pipeline = DrawingPipeline(cfg, sinks=[canvas])
    if commands:
        pipeline.on_command(lambda cmd: typer.echo(json.dumps(cmd.to_dict())))

    frames = player.play_realtime(speed=speed) if realtime else player.play()
    for frame in frames:
        pipeline.process(frame)

    stats = pipeline.stats
    typer.echo(f"\n✅ Replay complete.", err=True)
    typer.echo(f"   Frames:   {stats.total_frames} ({stats.frames_with_hand} with hand)", err=True)
    typer.echo(f"   Commands: {stats.total_commands} {stats.commands_by_type}", err=True)
    typer.echo(f"   Strokes:  {len(canvas.strokes)} (clears: {stats.clears})", err=True)


@app.command("config")
def write_config(
    output: str = typer.Argument("pinchdraw.yml", help="Output YAML path"),
    preset: str = typer.Option("default", help="Filter preset: default, responsive"),
    force: bool = typer.Option(False, help="Overwrite an existing file"),
):
    """Write a configuration file from a preset."""
    from pinchdraw.config import EngineConfig

    path = Path(output)
    if path.exists() and not force:
        typer.echo(f"❌ {output} exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)

    try:
        cfg = EngineConfig.preset(preset)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    cfg.to_yaml(path)
    typer.echo(f"💾 Saved {preset} config to {output}")


@app.command()
def benchmark(
    sessions: int = typer.Option(20, help="Number of synthetic sessions to run"),
    fps: float = typer.Option(60.0, help="Synthetic frame rate"),
    noise: float = typer.Option(0.002, help="Landmark jitter (normalized units)"),
):
    """Run the full pipeline over synthetic sessions and report latency."""
    from pinchdraw.pipeline import DrawingPipeline
    from pinchdraw.synthetic import drawing_session

    if sessions < 1 or not fps > 0:
        typer.echo("❌ --sessions must be at least 1 and --fps positive", err=True)
        raise typer.Exit(1)

    frames = drawing_session(fps=fps, noise=noise)
    typer.echo(f"⚡ Running benchmark: {sessions} sessions × {len(frames)} frames")

    pipeline = DrawingPipeline()
    times = []
    for _ in range(sessions):
        pipeline.reset()
        for frame in frames:
            t0 = time.perf_counter()
            pipeline.process(frame)
            times.append(time.perf_counter() - t0)

    avg_ms = sum(times) / len(times) * 1000
    p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000
    fps_out = 1000 / avg_ms if avg_ms > 0 else 0

    typer.echo(f"\n📊 Results:")
    typer.echo(f"   Average latency: {avg_ms:.3f} ms")
    typer.echo(f"   P95 latency:     {p95_ms:.3f} ms")
    typer.echo(f"   Throughput:      {fps_out:.0f} FPS")

    typer.echo(f"\n📈 Stage breakdown (last session):")
    for name, stats in pipeline.profiler.summary().items():
        typer.echo(f"   {name:15s} avg={stats['avg_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms")


def main():
    app()


if __name__ == "__main__":
    main()
