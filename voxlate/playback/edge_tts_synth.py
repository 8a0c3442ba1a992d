from __future__ import annotations

import asyncio
import io

from voxlate.languages import voice_for
from voxlate.playback.base import SpeechSynthesizer


class SynthesisError(RuntimeError):
    pass


def rate_to_percent(rate: float) -> str:
    """Map a speed factor (1.0 = normal) to edge-tts' signed percentage."""
    if rate <= 0:
        raise ValueError("rate must be > 0")
    return f"{int(round((float(rate) - 1.0) * 100)):+d}%"


class EdgeTTSSynthesizer(SpeechSynthesizer):
    """
    Neural TTS through `edge-tts`, decoded with `soundfile` and played with
    `sounddevice`. `sd.play` stops any stream started earlier, which gives the
    interrupt-and-replace behaviour for overlapping calls.
    """

    def __init__(self, *, device: int | None = None, voices: dict[str, str] | None = None) -> None:
        self.device = device
        self.voices = dict(voices or {})

    @property
    def name(self) -> str:
        return "edge-tts"

    def _voice(self, language: str) -> str:
        return self.voices.get(language) or voice_for(language)

    async def _synthesize(self, text: str, voice: str, rate: float) -> bytes:
        import edge_tts

        communicate = edge_tts.Communicate(text, voice, rate=rate_to_percent(rate))
        audio = bytearray()
        async for chunk in communicate.stream():
            if chunk.get("type") == "audio":
                audio.extend(chunk["data"])
        if not audio:
            raise SynthesisError(f"edge-tts returned no audio for voice {voice}")
        return bytes(audio)

    async def speak(self, text: str, language: str, rate: float) -> None:
        audio = await self._synthesize(text, self._voice(language), rate)

        try:
            import sounddevice as sd
            import soundfile as sf
        except (ImportError, OSError) as e:
            raise SynthesisError(
                "Audio playback needs sounddevice and soundfile. "
                "Install with: python -m pip install sounddevice soundfile"
            ) from e

        data, sample_rate = sf.read(io.BytesIO(audio), dtype="float32")
        duration = len(data) / float(sample_rate) if sample_rate else 0.0
        sd.play(data, sample_rate, device=self.device)
        try:
            await asyncio.sleep(duration)
        except asyncio.CancelledError:
            sd.stop()
            raise
