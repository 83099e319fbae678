import logging
from pathlib import Path

import numpy as np
import soundfile as sf

from livecaption import main as main_module
from livecaption.backend.application.caption_board import CaptionBoard
from livecaption.backend.application.transcriber import TranscriptionOutcome
from livecaption.errors import CaptionError, ErrorCode
from livecaption.utils.logger import TRANSCRIPT_LOGGER


def _restore_logging():
    TRANSCRIPT_LOGGER.handlers.clear()
    TRANSCRIPT_LOGGER.addHandler(logging.NullHandler())
    logging.getLogger().setLevel(logging.WARNING)


def test_console_sink_prints_and_publishes(capsys):
    """Test console sink prints and publishes."""
    board = CaptionBoard()
    sink = main_module.ConsoleSink(board, show_tentative=False)
    sink(TranscriptionOutcome.tentative("half"))
    sink(TranscriptionOutcome.confirmed("whole"))
    sink(TranscriptionOutcome.failed(CaptionError(ErrorCode.RECOGNIZER_FAILED, "x")))

    captured = capsys.readouterr()
    assert captured.out == "[CONFIRMED] whole\n"
    assert "[FAILED] ERR2001 x" in captured.err
    assert board.text == "whole"


def test_main_transcribes_file_with_null_model(tmp_path: Path, capsys):
    """A file run with the null model completes without captions."""
    wav = tmp_path / "input.wav"
    sf.write(str(wav), np.full(16000, 0.3, dtype=np.float32), 16000)
    try:
        code = main_module.main(
            [
                "--config",
                str(tmp_path / "missing.yaml"),
                "--input",
                str(wav),
                "--vad",
                "energy",
                "--log-level",
                "WARNING",
            ]
        )
    finally:
        _restore_logging()
    assert code == 0
    assert "[CONFIRMED]" not in capsys.readouterr().out


def test_main_rejects_invalid_config(tmp_path: Path, capsys):
    """Test main rejects invalid config."""
    bad = tmp_path / "bad.yaml"
    bad.write_text("threshold_profile: 7\n", encoding="utf-8")
    code = main_module.main(["--config", str(bad)])
    assert code == 2
    assert "ERR5001" in capsys.readouterr().err


def test_main_reports_unknown_model(tmp_path: Path):
    """Test main reports unknown model."""
    wav = tmp_path / "input.wav"
    sf.write(str(wav), np.zeros(1600, dtype=np.float32), 16000)
    try:
        code = main_module.main(
            [
                "--config",
                str(tmp_path / "missing.yaml"),
                "--input",
                str(wav),
                "--vad",
                "energy",
                "--model",
                "ghost",
            ]
        )
    finally:
        _restore_logging()
    assert code == 1
