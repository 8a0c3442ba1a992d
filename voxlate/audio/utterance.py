from __future__ import annotations

import math
from array import array
from typing import Optional

from voxlate.contracts import AudioChunk


def pcm16_rms(pcm16: bytes) -> float:
    """Return RMS energy for little-endian int16 PCM bytes."""
    if not pcm16:
        return 0.0

    samples = array("h")
    samples.frombytes(pcm16[: len(pcm16) - (len(pcm16) % 2)])
    if not samples:
        return 0.0

    sum_sq = 0.0
    for value in samples:
        fv = float(value)
        sum_sq += fv * fv
    return math.sqrt(sum_sq / len(samples))


class EnergyVAD:
    def __init__(self, rms_threshold: float = 250.0) -> None:
        if rms_threshold < 0:
            raise ValueError("rms_threshold must be >= 0")
        self.rms_threshold = float(rms_threshold)

    def is_speech(self, pcm16: bytes) -> bool:
        return pcm16_rms(pcm16) >= self.rms_threshold


class UtteranceSegmenter:
    """
    Groups fixed-size mic chunks into utterances using an energy VAD.

    An utterance closes after `silence_chunks` non-speech chunks, when it
    reaches `max_utter_sec`, or on `flush()`. Utterances shorter than
    `min_utter_sec` are dropped.
    """

    def __init__(
        self,
        *,
        vad: EnergyVAD,
        silence_chunks: int = 2,
        min_utter_sec: float = 0.6,
        max_utter_sec: float | None = None,
    ) -> None:
        if silence_chunks <= 0:
            raise ValueError("silence_chunks must be > 0")
        if min_utter_sec < 0:
            raise ValueError("min_utter_sec must be >= 0")
        if max_utter_sec is not None and max_utter_sec <= 0:
            raise ValueError("max_utter_sec must be > 0 when set")

        self.vad = vad
        self.silence_chunks = int(silence_chunks)
        self.min_utter_sec = float(min_utter_sec)
        self.max_utter_sec = float(max_utter_sec) if max_utter_sec is not None else None
        self._reset()

    def _reset(self) -> None:
        self._parts: list[bytes] = []
        self._bytes = 0
        self._t0 = 0.0
        self._sr = 0
        self._ch = 0
        self._trailing_silence = 0

    @property
    def in_utterance(self) -> bool:
        return bool(self._parts)

    def _seconds(self) -> float:
        bytes_per_second = self._sr * self._ch * 2
        return self._bytes / float(bytes_per_second) if bytes_per_second > 0 else 0.0

    def _close(self) -> Optional[AudioChunk]:
        if not self._parts:
            return None
        utter = AudioChunk(
            pcm16=b"".join(self._parts),
            sample_rate=self._sr,
            channels=self._ch,
            start_time=self._t0,
            duration=self._seconds(),
        )
        self._reset()
        if utter.duration < self.min_utter_sec:
            return None
        return utter

    def push(self, chunk: AudioChunk) -> Optional[AudioChunk]:
        if self.vad.is_speech(chunk.pcm16):
            if not self._parts:
                self._t0 = float(chunk.start_time)
                self._sr = int(chunk.sample_rate)
                self._ch = int(chunk.channels)
            self._parts.append(chunk.pcm16)
            self._bytes += len(chunk.pcm16)
            self._trailing_silence = 0
            if self.max_utter_sec is not None and self._seconds() >= self.max_utter_sec:
                return self._close()
            return None

        if not self._parts:
            return None
        self._trailing_silence += 1
        if self._trailing_silence >= self.silence_chunks:
            return self._close()
        return None

    def flush(self) -> Optional[AudioChunk]:
        return self._close()
