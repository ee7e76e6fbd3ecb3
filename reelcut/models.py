"""Shared data types used across ReelCut."""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def width(self) -> float:
        return self.end - self.start


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    audio_sample_rate: int | None = None
    codec_video: str | None = None
    codec_audio: str | None = None

    @property
    def has_audio(self) -> bool:
        return self.codec_audio is not None


@dataclass
class ClipOutput:
    """One file produced by an edit, with the name offered to the user."""

    path: Path
    filename: str
    mimetype: str = "video/mp4"
