import argparse
import sys
from pathlib import Path
from typing import List, Optional

from livecaption.audio.source import open_source
from livecaption.backend.application import (
    CaptionBoard,
    CaptionWorker,
    OutcomeKind,
    Transcriber,
    TranscriptionOutcome,
)
from livecaption.backend.component.vad_gate import build_vad_gate
from livecaption.backend.runtime.metrics import Metrics
from livecaption.backend.transport.http_server import (
    HttpServerHandle,
    start_http_server,
)
from livecaption.config import DEFAULT_CONFIG_PATH, CaptionConfig, load_config
from livecaption.errors import CaptionError
from livecaption.model.registry import ModelRegistry
from livecaption.utils.logger import LOGGER, configure_logging, shutdown_logging


class ConsoleSink:
    """Publishes outcomes to the caption board and echoes them to stdout."""

    def __init__(self, board: CaptionBoard, show_tentative: bool = True) -> None:
        self.board = board
        self.show_tentative = show_tentative

    def __call__(self, outcome: TranscriptionOutcome) -> None:
        self.board.publish(outcome)
        if outcome.kind is OutcomeKind.CONFIRMED:
            print(f"[CONFIRMED] {outcome.text}", flush=True)
        elif outcome.kind is OutcomeKind.TENTATIVE and self.show_tentative:
            print(f"[TENTATIVE] {outcome.text}", flush=True)
        elif outcome.kind is OutcomeKind.FAILED and outcome.error is not None:
            print(f"[FAILED] {outcome.error}", file=sys.stderr, flush=True)


def run(config: CaptionConfig, input_spec: str, realtime: bool) -> int:
    """Wire capture, transcriber, worker and optional HTTP surface."""
    metrics = Metrics()
    context = config.execution_context()
    registry = ModelRegistry.from_config(config.models, context)
    gate = build_vad_gate(
        config.vad_backend,
        config.sample_rate,
        context,
        energy_reference_rms=config.energy_reference_rms,
        energy_chunk_samples=config.energy_chunk_samples,
    )
    transcriber = Transcriber(
        gate,
        registry.load,
        config.model,
        settings=config.transcriber_settings(),
        metrics=metrics,
    )
    if transcriber.recognizer.sample_rate != config.sample_rate:
        LOGGER.warning(
            "Model %s expects %d Hz but the pipeline runs at %d Hz",
            config.model,
            transcriber.recognizer.sample_rate,
            config.sample_rate,
        )
    board = CaptionBoard(max_chars=config.stabilizer_max_chars)
    source = open_source(
        input_spec,
        sample_rate=config.sample_rate,
        block_ms=config.input_block_ms,
        device=config.input_device,
        channels=config.input_channels,
        realtime=realtime,
    )
    worker = CaptionWorker(
        transcriber,
        source,
        ConsoleSink(board),
        idle_sleep_sec=config.idle_sleep_sec,
        metrics=metrics,
    )
    http_handle: Optional[HttpServerHandle] = None
    worker.start()
    try:
        if config.http_enabled:
            http_handle = start_http_server(
                worker, board, metrics, registry, config.http_host, config.http_port
            )
        while not worker.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down")
    finally:
        worker.stop()
        if http_handle is not None:
            http_handle.stop(timeout=5.0)
        LOGGER.info("Caption metrics: %s", metrics.snapshot())
    return 1 if worker.error is not None else 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live streaming captions")
    parser.add_argument(
        "--config",
        type=str,
        help=f"Path to YAML config (default search: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--model", default=None, help="Model name from the catalog")
    parser.add_argument(
        "--device", default=None, help="Torch device for the VAD and recognizer"
    )
    parser.add_argument(
        "--input",
        default="mic",
        help="'mic' for the default input device, or a path to an audio file",
    )
    parser.add_argument(
        "--input-device", default=None, help="Input device index or name for 'mic'"
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace file input at real-time speed",
    )
    parser.add_argument(
        "--vad",
        default=None,
        choices=("silero", "energy"),
        help="Voice activity gate backend; overrides config",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. TRACE, DEBUG, INFO); overrides config",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path; overrides config",
    )
    parser.add_argument(
        "--transcript-log-file",
        default=None,
        help="Write confirmed captions to this file",
    )
    parser.add_argument(
        "--http",
        dest="http_enabled",
        action="store_true",
        help="Enable the HTTP control surface",
    )
    parser.add_argument(
        "--no-http",
        dest="http_enabled",
        action="store_false",
        help="Disable the HTTP control surface (overrides config)",
    )
    parser.set_defaults(http_enabled=None)
    parser.add_argument(
        "--http-port", type=int, default=None, help="Port for the HTTP surface"
    )
    return parser.parse_args(argv)


def configure_from_args(args: argparse.Namespace) -> CaptionConfig:
    config_arg_path = Path(args.config).expanduser() if args.config else None
    effective_config_path = config_arg_path or DEFAULT_CONFIG_PATH
    config = load_config(effective_config_path)

    if args.model is not None:
        config.model = args.model
    if args.device is not None:
        config.device = args.device
    if args.input_device is not None:
        config.input_device = args.input_device
    if args.vad is not None:
        config.vad_backend = args.vad
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_file is not None:
        config.log_file = args.log_file
    if args.transcript_log_file is not None:
        config.transcript_log_file = args.transcript_log_file
    if args.http_enabled is not None:
        config.http_enabled = args.http_enabled
    if args.http_port is not None:
        config.http_port = args.http_port

    configure_logging(config.log_level, config.log_file, config.transcript_log_file)
    if effective_config_path.exists():
        LOGGER.info("Loaded caption config from %s", effective_config_path)
    else:
        LOGGER.info(
            "Caption config file not found at %s; using defaults/CLI overrides",
            effective_config_path,
        )
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = configure_from_args(args)
    except CaptionError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    try:
        return run(config, args.input, args.realtime)
    except CaptionError as exc:
        LOGGER.error("Startup failed: %s", exc)
        return 1
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
