"""Audio capture sources."""

from .source import AudioSource, FileSource, MicrophoneSource, open_source

__all__ = ["AudioSource", "FileSource", "MicrophoneSource", "open_source"]
