from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class TranslationState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DeviceAccess(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


# --- capture events (one capture run, arrival order) ---

@dataclass(frozen=True)
class PartialResult:
    text: str


@dataclass(frozen=True)
class FinalResult:
    text: str


@dataclass(frozen=True)
class CaptureError:
    reason: str


@dataclass(frozen=True)
class CaptureEnded:
    pass


CaptureEvent = Union[PartialResult, FinalResult, CaptureError, CaptureEnded]


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: str = "en"
    target_lang: str = "es"
    # Stamped by the coordinator at submission; orders requests by submission.
    request_id: int = 0


@dataclass(frozen=True)
class TranslationResult:
    request: TranslationRequest
    translated_text: str = ""
    provider: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio chunk captured from a live source (e.g., microphone).
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int
    start_time: float  # seconds since stream start
    duration: float    # seconds


@dataclass(frozen=True)
class ASRSegment:
    text: str
    t0: float
    t1: float
    is_final: bool = True
