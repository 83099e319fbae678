"""Model catalog and recognizer backends."""

from .registry import ModelRegistry, ModelSpec

__all__ = ["ModelRegistry", "ModelSpec"]
