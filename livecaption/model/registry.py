"""Named model catalog; resolves a model name to a loaded recognizer."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from livecaption.config.default.model import DEFAULT_RECOGNIZER_BACKEND
from livecaption.errors import CaptionError, ErrorCode, ModelLoadFailure
from livecaption.model.recognizers import (
    ExecutionContext,
    Recognizer,
    get_recognizer_backend,
)
from livecaption.utils.logger import LOGGER


@dataclass(frozen=True)
class ModelSpec:
    """Catalog entry: backend name plus backend-specific options."""

    name: str
    backend: str = DEFAULT_RECOGNIZER_BACKEND
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, name: str, raw: Mapping[str, Any]) -> "ModelSpec":
        options = dict(raw)
        backend = str(options.pop("backend", DEFAULT_RECOGNIZER_BACKEND))
        return cls(name=name, backend=backend, options=options)

    def describe(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name, "backend": self.backend}
        if "path" in self.options:
            payload["path"] = str(self.options["path"])
        return payload


class ModelRegistry:
    """Loads recognizers by name against one execution context.

    Each ``load`` builds a fresh recognizer; the transcriber owns it after
    that, so nothing is cached here.
    """

    def __init__(
        self, specs: Mapping[str, ModelSpec], context: Optional[ExecutionContext] = None
    ) -> None:
        self._lock = threading.Lock()
        self._specs: Dict[str, ModelSpec] = dict(specs)
        self.context = context or ExecutionContext()

    @classmethod
    def from_config(
        cls, models: Mapping[str, Mapping[str, Any]], context: ExecutionContext
    ) -> "ModelRegistry":
        specs = {name: ModelSpec.from_mapping(name, raw) for name, raw in models.items()}
        return cls(specs, context)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._specs)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._specs

    def spec(self, name: str) -> ModelSpec:
        with self._lock:
            spec = self._specs.get(name)
        if spec is None:
            raise ModelLoadFailure(f"unknown model: {name}", code=ErrorCode.MODEL_UNKNOWN)
        return spec

    def register(self, spec: ModelSpec) -> None:
        with self._lock:
            self._specs[spec.name] = spec

    def load(self, name: str) -> Recognizer:
        """Instantiate the named recognizer or raise ModelLoadFailure."""
        spec = self.spec(name)
        started = time.perf_counter()
        try:
            factory = get_recognizer_backend(spec.backend)
            recognizer = factory(spec.name, dict(spec.options), self.context)
        except CaptionError:
            raise
        except Exception as exc:
            LOGGER.exception("Failed to load model %s (backend=%s)", name, spec.backend)
            raise ModelLoadFailure(f"{name}: {exc}") from exc
        LOGGER.info(
            "Model %s ready (backend=%s, %.2fs)",
            name,
            spec.backend,
            time.perf_counter() - started,
        )
        return recognizer

    def describe(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [self._specs[name].describe() for name in sorted(self._specs)]


__all__ = ["ModelRegistry", "ModelSpec"]
