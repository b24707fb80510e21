"""Core data models for the app."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    READY = "READY"


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class TranslationMode(str, Enum):
    TEXT = "TEXT"
    VOICE = "VOICE"


@dataclass
class TranslationResult:
    original: str
    translated: str
    pronunciation: Optional[str] = None
    context: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class HistoryItem(TranslationResult):
    id: str = ""
    timestamp: int = 0

    @classmethod
    def from_result(cls, result: TranslationResult, item_id: str, timestamp: int) -> "HistoryItem":
        return cls(
            original=result.original,
            translated=result.translated,
            pronunciation=result.pronunciation,
            context=result.context,
            id=item_id,
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class AudioBlob:
    data: bytes
    mime_type: str = "audio/wav"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class PlaybackBuffer:
    """Decoded float32 samples shaped ``(frames, channels)``."""

    samples: np.ndarray
    sample_rate: int = 24000
    channels: int = 1

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_s(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / float(self.sample_rate)
