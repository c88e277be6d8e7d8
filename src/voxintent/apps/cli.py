"""CLI entry point for voxintent.

Parses arguments, configures logging, and runs one of the subcommands:

    info         print engine metadata and the compiled context
    simulate     synthesize a phrase with the tone model and decode it
    listen       decode live microphone audio
    build-model  write a tone model covering a context's words
"""

import argparse
import logging

from voxintent.core.constants import (
    DEFAULT_AUDIO_QUEUE_MAXSIZE,
    DEFAULT_ENERGY_THRESHOLD,
    DEFAULT_SENSITIVITY,
    DEFAULT_VAD_FRAME_MS,
    DEFAULT_VAD_MODE,
)
from voxintent.core.env import LOGGER, log_level


def _add_engine_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared by the subcommands that open a session."""
    parser.add_argument("--model", required=True, help="Acoustic model file (.npz)")
    parser.add_argument("--context", required=True, help="Context file (.json)")
    parser.add_argument(
        "--sensitivity",
        type=float,
        default=DEFAULT_SENSITIVITY,
        help=f"Inference sensitivity in [0, 1] (default: {DEFAULT_SENSITIVITY})",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="JSON config file (default: ~/.config/voxintent/config.json)",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with subcommand support."""
    parser = argparse.ArgumentParser(
        description="Streaming speech-to-intent over a developer-defined context"
    )
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio devices"
    )
    subparsers = parser.add_subparsers(dest="subcommand")

    info_parser = subparsers.add_parser("info", help="Show engine and context info")
    _add_engine_args(info_parser)

    simulate_parser = subparsers.add_parser(
        "simulate", help="Decode a phrase rendered with the tone model",
    )
    _add_engine_args(simulate_parser)
    simulate_parser.add_argument("phrase", help="Words to synthesize, e.g. 'turn on the light'")

    listen_parser = subparsers.add_parser("listen", help="Decode live microphone audio")
    _add_engine_args(listen_parser)
    listen_parser.add_argument(
        "--device", type=int, default=None, help="Audio input device"
    )
    listen_parser.add_argument(
        "--vad-mode",
        type=int,
        default=None,
        help=f"Use WebRTC VAD for silence with this aggressiveness 0-3 (e.g. {DEFAULT_VAD_MODE})",
    )
    listen_parser.add_argument(
        "--vad-frame-ms",
        type=int,
        default=DEFAULT_VAD_FRAME_MS,
        choices=[10, 20, 30],
        help=f"VAD frame size in ms (10/20/30, default: {DEFAULT_VAD_FRAME_MS})",
    )
    listen_parser.add_argument(
        "--repeat", action="store_true", help="Keep listening after each utterance"
    )

    build_parser = subparsers.add_parser(
        "build-model", help="Write a tone model for a context's vocabulary",
    )
    build_parser.add_argument("--output", required=True, help="Model file to write")
    build_parser.add_argument(
        "--context", action="append", default=[], help="Context file(s) to cover"
    )
    build_parser.add_argument(
        "--words", nargs="*", default=[], help="Extra words for the lexicon"
    )
    build_parser.add_argument(
        "--energy-threshold",
        type=float,
        default=DEFAULT_ENERGY_THRESHOLD,
        help=f"RMS energy below which frames count as silence (default: {DEFAULT_ENERGY_THRESHOLD})",
    )
    return parser


def list_audio_devices() -> None:
    """Display available audio input devices."""
    import sounddevice as sd
    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title="Audio Input Devices")
    table.add_column("ID", style="cyan")
    table.add_column("Device", style="white")
    table.add_column("Default", style="green")
    for i, d in enumerate(sd.query_devices()):
        if d["max_input_channels"] > 0:
            is_default = "Yes" if i == sd.default.device[0] else ""
            table.add_row(str(i), d["name"], is_default)
    console.print(table)


def _open_engine(args: argparse.Namespace, vad=None):
    from voxintent.api import create
    from voxintent.core.config import load_config

    return create(
        args.model,
        args.context,
        args.sensitivity,
        config=load_config(args.config_file),
        vad=vad,
    )


def print_result(console, engine) -> None:
    """Render the finalized utterance of *engine* and release the result."""
    from rich.table import Table

    reason = engine.decoder.endpoint.reason.value
    if not engine.is_understood():
        console.print(f"[yellow]Not understood[/yellow] (endpoint: {reason})")
        return
    result = engine.get_intent()
    try:
        table = Table(title=f"{result.intent}  ({result.confidence:.2f}, {reason})")
        table.add_column("Slot", style="cyan")
        table.add_column("Value", style="white")
        for slot, value in result.slots.items():
            table.add_row(slot, value)
        console.print(table)
    finally:
        engine.release_result(result)


def _run_info(args: argparse.Namespace) -> int:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    with _open_engine(args) as engine:
        grammar = engine.decoder.grammar
        table = Table(title="Engine")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Version", engine.version)
        table.add_row("Frame length", str(engine.frame_length))
        table.add_row("Sample rate", str(engine.sample_rate))
        table.add_row("Intents", str(len(grammar.intents)))
        table.add_row("Grammar nodes", str(grammar.num_nodes))
        table.add_row("Grammar edges", str(len(grammar.edges)))
        console.print(table)
        console.print(engine.context_info, markup=False, highlight=False)
    return 0


def _run_simulate(args: argparse.Namespace) -> int:
    from rich.console import Console

    from voxintent.core.config import load_config, ms_to_frames
    from voxintent.model import load_model, synthesize

    console = Console()
    config = load_config(args.config_file)
    model = load_model(args.model)
    trail = ms_to_frames(max(config.incomplete_silence_ms, config.max_idle_ms)) + 1
    pcm = synthesize(args.phrase, model, trail_frames=trail)
    with _open_engine(args) as engine:
        if not engine.feed(pcm):
            console.print("[red]Stream ended before the utterance was finalized[/red]")
            return 1
        print_result(console, engine)
    return 0


def _run_listen(args: argparse.Namespace) -> int:
    import queue

    import numpy as np
    import sounddevice as sd
    from rich.console import Console

    from voxintent.audio.vad import VadConfig

    console = Console()
    vad = (
        VadConfig(frame_ms=args.vad_frame_ms, mode=args.vad_mode)
        if args.vad_mode is not None
        else None
    )
    blocks: queue.Queue[np.ndarray] = queue.Queue(maxsize=DEFAULT_AUDIO_QUEUE_MAXSIZE)

    def callback(indata, frames, time_info, status) -> None:
        """Keep callback lightweight by deferring work to the main loop."""
        if status:
            LOGGER.debug("Audio status: %s", status)
        try:
            blocks.put_nowait(indata.reshape(-1).copy())
        except queue.Full:
            LOGGER.warning("Dropping audio block; decoder is falling behind")

    with _open_engine(args, vad=vad) as engine:
        with sd.InputStream(
            samplerate=engine.sample_rate,
            blocksize=engine.frame_length,
            channels=1,
            dtype="int16",
            device=args.device,
            callback=callback,
        ):
            console.print("[green]Listening[/green] (Ctrl+C to stop)")
            try:
                while True:
                    if not engine.feed(blocks.get()):
                        continue
                    print_result(console, engine)
                    if not args.repeat:
                        return 0
                    engine.reset()
            except KeyboardInterrupt:
                return 0


def _run_build_model(args: argparse.Namespace) -> int:
    from voxintent.core.context import load_context_file
    from voxintent.core.grammar import compile_context
    from voxintent.model import ToneModel, save_model

    words = {w.lower() for w in args.words}
    for path in args.context:
        words.update(compile_context(load_context_file(path)).labels)
    if not words:
        build_arg_parser().error("no words given; use --context or --words")
    model = ToneModel.build(words, energy_threshold=args.energy_threshold)
    save_model(model, args.output)
    LOGGER.info("Wrote %d-word tone model to %s", len(model.lexicon), args.output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code."""
    from rich.console import Console
    from rich.logging import RichHandler

    from voxintent.errors import VoxIntentError

    logging.basicConfig(
        level=log_level(),
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=False,
            )
        ],
    )

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.list_devices:
        list_audio_devices()
        return 0

    runners = {
        "info": _run_info,
        "simulate": _run_simulate,
        "listen": _run_listen,
        "build-model": _run_build_model,
    }
    runner = runners.get(args.subcommand)
    if runner is None:
        parser.print_help()
        return 2
    try:
        return runner(args)
    except VoxIntentError as exc:
        LOGGER.error("%s: %s", exc.status.value, exc)
        return 1
