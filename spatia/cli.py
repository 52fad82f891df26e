"""
CLI - Command-line interface.

Thin wrapper over the session: list sounds, render noise, inspect,
render and play scene documents.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import numpy as np
import soundfile as sf


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="spatia",
        description="Spatial ambient sound rooms",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Lifecycle log level (default: warning)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Log events as JSON")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # catalog command
    subparsers.add_parser("catalog", help="List built-in sounds")

    # noise command
    noise_parser = subparsers.add_parser("noise", help="Write a noise buffer to a WAV file")
    noise_parser.add_argument("color", choices=["white", "pink", "brown"], help="Noise color")
    noise_parser.add_argument("-o", "--output", required=True, help="Output WAV file")
    noise_parser.add_argument("-d", "--duration", type=float, default=2.0, help="Seconds (default: 2)")
    noise_parser.add_argument("--sample-rate", type=int, default=48000, help="Sample rate (default: 48000)")
    noise_parser.add_argument("--seed", type=int, help="Random seed")

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Summarize a scene file")
    inspect_parser.add_argument("scene", help="Scene JSON file")

    # render command
    render_parser = subparsers.add_parser("render", help="Render a scene to a WAV file")
    render_parser.add_argument("scene", help="Scene JSON file")
    render_parser.add_argument("-o", "--output", required=True, help="Output WAV file")
    render_parser.add_argument("-d", "--duration", type=float, default=10.0, help="Seconds (default: 10)")
    render_parser.add_argument("--sample-rate", type=int, default=48000, help="Sample rate (default: 48000)")
    render_parser.add_argument("--filters", action="store_true", help="Enable coloring filters")
    render_parser.add_argument("--seed", type=int, help="Random seed for noise")

    # play command
    play_parser = subparsers.add_parser("play", help="Play a scene on the output device")
    play_parser.add_argument("scene", help="Scene JSON file")
    play_parser.add_argument("-d", "--duration", type=float, help="Seconds to play (default: until Ctrl+C)")
    play_parser.add_argument("--device", help="Output device name or index")
    play_parser.add_argument("--filters", action="store_true", help="Enable coloring filters")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    from spatia.monitoring.logging import configure_logging
    configure_logging(parsed.log_level, json_format=parsed.json_logs)

    if parsed.command == "version":
        from spatia import __version__
        print(f"spatia {__version__}")
        return 0

    if parsed.command == "catalog":
        return _cmd_catalog()

    if parsed.command == "noise":
        return _cmd_noise(parsed)

    if parsed.command == "inspect":
        return _cmd_inspect(parsed)

    if parsed.command == "render":
        return _cmd_render(parsed)

    if parsed.command == "play":
        return _cmd_play(parsed)

    return 1


def _cmd_catalog() -> int:
    """List built-in sounds."""
    from spatia.synthesis.catalog import SOUND_CATALOG

    print("Built-in sounds:")
    print()
    for definition in SOUND_CATALOG:
        print(
            f"  {definition.id:8} {definition.icon}  {definition.label:10} "
            f"kind={definition.kind.value}, peak={definition.peak_volume}"
        )
    return 0


def _cmd_noise(args: argparse.Namespace) -> int:
    """Render a noise buffer."""
    from spatia.synthesis.noise import NoiseGenerator

    noise = NoiseGenerator(np.random.default_rng(args.seed))
    try:
        samples = noise.generate(args.color, args.duration, args.sample_rate)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sf.write(args.output, samples, args.sample_rate)
    print(f"Wrote {len(samples)} samples of {args.color} noise to {args.output}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    """Summarize a scene document."""
    from spatia.errors import SceneFormatError
    from spatia.scene.document import SceneDocument

    try:
        document = SceneDocument.load(args.scene)
    except (OSError, SceneFormatError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Scene {args.scene} (version {document.version}, {len(document)} sounds)")
    print()
    for position, entry in enumerate(document.sounds):
        index = entry.index if entry.index is not None else position
        movement = entry.movement
        line = (
            f"  [{index}] {entry.type:8} {entry.label or '-':12} "
            f"at ({entry.position.x:+.2f}, {entry.position.z:+.2f}) "
            f"volume={entry.volume:.2f} movement={movement.kind.value}"
        )
        if not movement.is_static:
            line += f" (speed={movement.speed}, distance={movement.distance})"
        if entry.is_custom:
            status = "embedded" if entry.has_payload else "MISSING"
            line += f" file={entry.file_name} [{status}]"
        print(line)
    for error in document.errors:
        print(f"  [{error.index}] MALFORMED {error.message}")
    return 0


def _build_session(args: argparse.Namespace, live: bool):
    from spatia.config import Config
    from spatia.movement.scheduler import FrameScheduler, MonotonicClock, VirtualClock
    from spatia.session import SpatiaSession
    from spatia.synthesis.noise import NoiseGenerator

    device = getattr(args, "device", None)
    if device is not None and device.isdigit():
        device = int(device)

    config = Config(
        sample_rate=getattr(args, "sample_rate", 48000),
        use_filters=args.filters,
        output_device=device,
    )
    clock = MonotonicClock() if live else VirtualClock()
    return SpatiaSession(
        config,
        scheduler=FrameScheduler(clock, config.frame_rate),
        noise=NoiseGenerator(np.random.default_rng(getattr(args, "seed", None))),
    )


def _load_into(session, scene: str) -> int:
    from spatia.session import CommandStatus

    result = session.load_scene_file(scene)
    if result.status == CommandStatus.REJECTED:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    for issue in result.issues:
        print(f"Warning: sound {issue.index}: {issue.message}", file=sys.stderr)
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    """Render a scene offline."""
    if not Path(args.scene).exists():
        print(f"Error: File not found: {args.scene}", file=sys.stderr)
        return 1

    with _build_session(args, live=False) as session:
        session.start_audio()
        if _load_into(session, args.scene):
            return 1
        audio = session.render(args.duration)

    sf.write(args.output, audio, args.sample_rate)
    peak = float(np.max(np.abs(audio))) if len(audio) else 0.0
    print(f"Rendered {args.duration:.1f}s to {args.output} (peak {peak:.3f})")
    return 0


def _cmd_play(args: argparse.Namespace) -> int:
    """Play a scene live."""
    if not Path(args.scene).exists():
        print(f"Error: File not found: {args.scene}", file=sys.stderr)
        return 1

    try:
        import sounddevice  # noqa: F401
    except ImportError:
        print("(Install sounddevice to enable playback: pip install spatia[playback])")
        return 1

    with _build_session(args, live=True) as session:
        session.start_audio(live=True)
        if _load_into(session, args.scene):
            return 1
        print("Playing (Ctrl+C to stop)")
        try:
            if args.duration is None:
                while True:
                    time.sleep(0.25)
            else:
                time.sleep(args.duration)
        except KeyboardInterrupt:
            print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
