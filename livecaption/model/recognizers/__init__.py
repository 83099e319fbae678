"""Backend registry for recognizer implementations."""

from typing import Any, Callable, Dict

from livecaption.model.recognizers.base import (
    ExecutionContext,
    NullRecognizer,
    Recognizer,
    TokenPrediction,
)

RecognizerFactory = Callable[[str, Dict[str, Any], ExecutionContext], Recognizer]


def get_recognizer_backend(name: str) -> RecognizerFactory:
    """Resolve a backend implementation by name."""
    normalized = (name or "torchscript_transducer").lower()
    if normalized in {"null", "none"}:
        return NullRecognizer.from_spec
    if normalized in {
        "torchscript_transducer",
        "torchscript-transducer",
        "transducer",
        "tdt",
    }:
        # Imported lazily so torch is only loaded when a real model is configured.
        from livecaption.model.recognizers.torchscript_transducer import (
            TorchScriptTransducerRecognizer,
        )

        return TorchScriptTransducerRecognizer.from_spec
    raise ValueError(f"Unknown recognizer backend: {name}")


__all__ = [
    "ExecutionContext",
    "NullRecognizer",
    "Recognizer",
    "RecognizerFactory",
    "TokenPrediction",
    "get_recognizer_backend",
]
