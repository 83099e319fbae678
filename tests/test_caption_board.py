import logging
from pathlib import Path

from livecaption.backend.application.caption_board import CaptionBoard
from livecaption.backend.application.transcriber import TranscriptionOutcome
from livecaption.backend.component.text_stabilizer import (
    TextStabilizer,
    break_sentences,
    count_overlapped,
)
from livecaption.errors import CaptionError, ErrorCode
from livecaption.utils import logger as logger_module
from livecaption.utils.logger import TRANSCRIPT_LOGGER, configure_logging


def test_count_overlapped_matches_last_occurrence_of_first_word():
    """Test count overlapped matches last occurrence of first word."""
    assert count_overlapped("see you at the station", "the station now") == len(
        "the station"
    )
    assert count_overlapped("Hello there", "hello again") == len("Hello there")
    assert count_overlapped("nothing shared", "brand new") == 0
    assert count_overlapped("anything", "   ") == 0


def test_count_overlapped_keeps_index_when_folding_changes_length():
    """Test count overlapped keeps index when folding changes length."""
    assert count_overlapped("İstanbul trip", "trip again") == len("trip")
    assert count_overlapped("Straße walk", "walk home") == len("walk")


def test_break_sentences_splits_after_terminators():
    """Test break sentences splits after terminators."""
    assert break_sentences("One. Two! Three? four") == "One.\nTwo!\nThree?\nfour"
    assert break_sentences("終わり。次") == "終わり。\n次"
    assert break_sentences("3.5 apples") == "3.5 apples"


def test_stabilizer_tentative_then_confirmed():
    """Test stabilizer tentative then confirmed."""
    stabilizer = TextStabilizer()
    stabilizer.apply(TranscriptionOutcome.tentative("hello wor"))
    assert stabilizer.render() == "hello wor"
    assert stabilizer.render() is None

    stabilizer.apply(TranscriptionOutcome.confirmed("hello world."))
    assert stabilizer.current == ""
    assert stabilizer.render() == "hello world."

    stabilizer.apply(TranscriptionOutcome.tentative("how are"))
    assert stabilizer.render() == "hello world.\nhow are"


def test_stabilizer_drops_repeated_overlap():
    """Test stabilizer drops repeated overlap."""
    stabilizer = TextStabilizer()
    stabilizer.apply(TranscriptionOutcome.confirmed("we went to the"))
    stabilizer.apply(TranscriptionOutcome.confirmed("the park today"))
    assert stabilizer.committed == "we went to the park today"


def test_stabilizer_bounds_history_on_word_boundary():
    """Test stabilizer bounds history on word boundary."""
    stabilizer = TextStabilizer(max_chars=12)
    stabilizer.apply(TranscriptionOutcome.confirmed("alpha beta"))
    stabilizer.apply(TranscriptionOutcome.confirmed("gamma delta"))
    assert stabilizer.committed == "gamma delta"


def test_stabilizer_ignores_none_and_failures():
    """Test stabilizer ignores none and failures."""
    stabilizer = TextStabilizer()
    stabilizer.apply(TranscriptionOutcome.none())
    stabilizer.apply(
        TranscriptionOutcome.failed(CaptionError(ErrorCode.RECOGNIZER_FAILED))
    )
    assert stabilizer.render() is None


def test_board_snapshot_tracks_outcomes():
    """Test board snapshot tracks outcomes."""
    board = CaptionBoard()
    board.publish(TranscriptionOutcome.tentative("good mor"))
    snap = board.snapshot()
    assert snap["text"] == "good mor"
    assert snap["tentative"] == "good mor"
    assert snap["tentative_count"] == 1

    failure = CaptionError(ErrorCode.RECOGNIZER_FAILED, "joiner exploded")
    board(TranscriptionOutcome.failed(failure))
    assert board.snapshot()["last_error"] == {
        "code": "ERR2001",
        "message": "joiner exploded",
    }

    board(TranscriptionOutcome.confirmed("good morning."))
    snap = board.snapshot()
    assert snap["text"] == "good morning."
    assert snap["tentative"] is None
    assert snap["confirmed"] == "good morning."
    assert snap["confirmed_count"] == 1
    assert snap["last_error"] is None
    assert snap["updated_at"] is not None


def test_board_clear_resets_text():
    """Test board clear resets text."""
    board = CaptionBoard()
    board.publish(TranscriptionOutcome.confirmed("hello"))
    board.clear()
    assert board.text == ""
    assert board.snapshot()["confirmed"] is None
    board.publish(TranscriptionOutcome.confirmed("again"))
    assert board.text == "again"


def test_board_writes_confirmed_text_to_transcript_sink(tmp_path: Path):
    """Confirmed captions reach the transcript sink, tentative ones do not."""
    transcript_path = tmp_path / "captions.log"
    configure_logging("INFO", None, transcript_log_file=str(transcript_path))
    try:
        board = CaptionBoard()
        board.publish(TranscriptionOutcome.tentative("draft words"))
        board.publish(TranscriptionOutcome.confirmed("final words"))
    finally:
        logger_module.shutdown_logging()
        TRANSCRIPT_LOGGER.handlers.clear()
        TRANSCRIPT_LOGGER.addHandler(logging.NullHandler())

    content = transcript_path.read_text(encoding="utf-8")
    assert "final words" in content
    assert "draft words" not in content
