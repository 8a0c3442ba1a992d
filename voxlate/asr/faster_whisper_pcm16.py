from __future__ import annotations

import os
import tempfile
import wave
from typing import List, Optional

import numpy as np

from voxlate.contracts import ASRSegment

_WHISPER_SR = 16000


def _write_pcm16_wav(path: str, pcm16: bytes, sample_rate: int, channels: int) -> None:
    with wave.open(path, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16)


def pcm16_to_float32_mono(pcm16: bytes, channels: int) -> np.ndarray:
    samples = np.frombuffer(pcm16[: len(pcm16) - (len(pcm16) % 2)], dtype=np.int16)
    if channels > 1:
        usable = len(samples) - (len(samples) % channels)
        samples = samples[:usable].reshape(-1, channels).mean(axis=1)
    return (samples.astype(np.float32) / 32768.0).astype(np.float32)


class FasterWhisperPCM16Transcriber:
    def __init__(
        self,
        *,
        model_size: str = "tiny",
        device: str = "cpu",
        compute_type: str = "int8",
        beam_size: int = 1,
    ) -> None:
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.beam_size = beam_size
        self._model = None

    def _get_model(self):
        if self._model is None:
            from faster_whisper import WhisperModel

            self._model = WhisperModel(
                self.model_size,
                device=self.device,
                compute_type=self.compute_type,
            )
        return self._model

    def _run(self, audio, language: Optional[str], utter_t0: float) -> List[ASRSegment]:
        segments, _info = self._get_model().transcribe(
            audio,
            language=language,
            beam_size=self.beam_size,
            vad_filter=False,
            condition_on_previous_text=False,
        )
        out: List[ASRSegment] = []
        for s in segments:
            text = (s.text or "").strip()
            if not text:
                continue
            out.append(
                ASRSegment(
                    text=text,
                    t0=float(utter_t0 + float(s.start)),
                    t1=float(utter_t0 + float(s.end)),
                    is_final=True,
                )
            )
        return out

    def transcribe_utterance(
        self,
        pcm16: bytes,
        sample_rate: int,
        channels: int,
        utter_t0: float,
        language: Optional[str] = None,
    ) -> List[ASRSegment]:
        if not pcm16:
            return []

        # faster-whisper takes raw arrays only at its native rate
        if sample_rate == _WHISPER_SR:
            return self._run(pcm16_to_float32_mono(pcm16, channels), language, utter_t0)

        fd, tmp_path = tempfile.mkstemp(suffix=".wav", prefix="voxlate_utter_")
        os.close(fd)
        try:
            _write_pcm16_wav(tmp_path, pcm16, sample_rate=sample_rate, channels=channels)
            return self._run(tmp_path, language, utter_t0)
        finally:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
