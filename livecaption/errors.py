"""Centralized error codes and status mappings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional


class ErrorCode(str, Enum):
    """Stable error identifiers surfaced to callers and logs."""

    # voice activity gate (ERR100x)
    GATE_INFERENCE_FAILED = "ERR1001"
    GATE_CHUNK_SIZE_INVALID = "ERR1002"

    # recognizer (ERR200x)
    RECOGNIZER_FAILED = "ERR2001"
    RECOGNIZER_FAILURE_LIMIT = "ERR2002"

    # model management (ERR300x)
    MODEL_UNKNOWN = "ERR3001"
    MODEL_LOAD_FAILED = "ERR3002"

    # worker/control plane (ERR400x)
    WORKER_NOT_RUNNING = "ERR4001"
    WORKER_UNEXPECTED = "ERR4002"

    # configuration (ERR500x)
    CONFIG_INVALID = "ERR5001"


@dataclass(frozen=True)
class ErrorSpec:
    """Maps an error code to an HTTP status and default message."""

    code: ErrorCode
    http_status: int
    message: str


ERROR_SPECS: Final[dict[ErrorCode, ErrorSpec]] = {
    ErrorCode.GATE_INFERENCE_FAILED: ErrorSpec(
        ErrorCode.GATE_INFERENCE_FAILED,
        500,
        "voice activity inference failed",
    ),
    ErrorCode.GATE_CHUNK_SIZE_INVALID: ErrorSpec(
        ErrorCode.GATE_CHUNK_SIZE_INVALID,
        400,
        "audio chunk does not match the gate window size",
    ),
    ErrorCode.RECOGNIZER_FAILED: ErrorSpec(
        ErrorCode.RECOGNIZER_FAILED,
        500,
        "recognizer decode failed",
    ),
    ErrorCode.RECOGNIZER_FAILURE_LIMIT: ErrorSpec(
        ErrorCode.RECOGNIZER_FAILURE_LIMIT,
        503,
        "recognizer failed repeatedly; clear or switch model to resume",
    ),
    ErrorCode.MODEL_UNKNOWN: ErrorSpec(
        ErrorCode.MODEL_UNKNOWN,
        404,
        "unknown model name",
    ),
    ErrorCode.MODEL_LOAD_FAILED: ErrorSpec(
        ErrorCode.MODEL_LOAD_FAILED,
        500,
        "model failed to load",
    ),
    ErrorCode.WORKER_NOT_RUNNING: ErrorSpec(
        ErrorCode.WORKER_NOT_RUNNING,
        503,
        "caption worker is not running",
    ),
    ErrorCode.WORKER_UNEXPECTED: ErrorSpec(
        ErrorCode.WORKER_UNEXPECTED,
        500,
        "unexpected caption worker error",
    ),
    ErrorCode.CONFIG_INVALID: ErrorSpec(
        ErrorCode.CONFIG_INVALID,
        400,
        "invalid configuration",
    ),
}

ERROR_HTTP_STATUS_MAP: Final[dict[ErrorCode, int]] = {
    code: spec.http_status for code, spec in ERROR_SPECS.items()
}


def spec_for(code: ErrorCode) -> ErrorSpec:
    """Return the ErrorSpec for a given error code."""
    return ERROR_SPECS[code]


def http_status_for(code: ErrorCode) -> int:
    """Return the HTTP status associated with an error code."""
    return ERROR_SPECS[code].http_status


def format_error(code: ErrorCode, detail: Optional[str] = None) -> str:
    """Format an error code and optional detail into a message."""
    spec = ERROR_SPECS[code]
    message = detail if detail else spec.message
    return f"{spec.code.value} {message}"


def http_payload_for(code: ErrorCode, detail: Optional[str] = None) -> dict[str, str]:
    """Build an HTTP error payload for a given error code."""
    spec = ERROR_SPECS[code]
    message = detail if detail else spec.message
    return {"code": spec.code.value, "message": message}


class CaptionError(RuntimeError):
    """Raised for application-defined errors with status metadata."""

    def __init__(self, code: ErrorCode, detail: Optional[str] = None) -> None:
        """Create a CaptionError with formatted message and status metadata."""
        self.code = code
        self.http_status = http_status_for(code)
        self.detail = detail or ERROR_SPECS[code].message
        super().__init__(format_error(code, detail))


class GateFailure(CaptionError):
    """Voice activity inference failed; the chunk is treated as silence."""

    def __init__(
        self,
        detail: Optional[str] = None,
        code: ErrorCode = ErrorCode.GATE_INFERENCE_FAILED,
    ) -> None:
        super().__init__(code, detail)


class RecognizerFailure(CaptionError):
    """A recognizer forward pass failed; only the current decode is aborted."""

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(ErrorCode.RECOGNIZER_FAILED, detail)


class ModelLoadFailure(CaptionError):
    """A model could not be resolved or loaded; the previous one stays active."""

    def __init__(
        self,
        detail: Optional[str] = None,
        code: ErrorCode = ErrorCode.MODEL_LOAD_FAILED,
    ) -> None:
        super().__init__(code, detail)


__all__ = [
    "ErrorCode",
    "ErrorSpec",
    "ERROR_SPECS",
    "ERROR_HTTP_STATUS_MAP",
    "CaptionError",
    "GateFailure",
    "ModelLoadFailure",
    "RecognizerFailure",
    "format_error",
    "http_payload_for",
    "http_status_for",
    "spec_for",
]
