from __future__ import annotations

import asyncio

import pytest

from voxlate.errors import DeviceUnavailable, PlaybackFailed
from voxlate.playback.base import SpeechSynthesizer
from voxlate.playback.controller import SPEECH_RATE, PlaybackController
from voxlate.playback.edge_tts_synth import rate_to_percent


class FakeSynth(SpeechSynthesizer):
    def __init__(self, *, block: bool = False, fail: Exception | None = None) -> None:
        self.block = block
        self.fail = fail
        self.calls: list[tuple[str, str, float]] = []
        self.cancelled: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}

    @property
    def name(self) -> str:
        return "fake-tts"

    async def speak(self, text: str, language: str, rate: float) -> None:
        self.calls.append((text, language, rate))
        if self.fail is not None:
            raise self.fail
        if not self.block:
            return
        gate = asyncio.Event()
        self.gates[text] = gate
        try:
            await gate.wait()
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise


async def _spin(n: int = 5) -> None:
    for _ in range(n):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_speak_empty_text_is_noop() -> None:
    synth = FakeSynth()
    pc = PlaybackController(synth)
    assert await pc.speak("", "es") is False
    assert synth.calls == []


@pytest.mark.asyncio
async def test_speak_uses_target_language_and_reduced_rate() -> None:
    synth = FakeSynth()
    pc = PlaybackController(synth)
    assert await pc.speak("hola", "es") is True
    assert synth.calls == [("hola", "es", SPEECH_RATE)]
    assert SPEECH_RATE == 0.8
    assert not pc.is_speaking


@pytest.mark.asyncio
async def test_speak_without_synthesizer_is_device_unavailable() -> None:
    pc = PlaybackController(None)
    assert await pc.speak("", "es") is False
    with pytest.raises(DeviceUnavailable):
        await pc.speak("hola", "es")


@pytest.mark.asyncio
async def test_provider_failure_becomes_playback_failed() -> None:
    pc = PlaybackController(FakeSynth(fail=OSError("no output device")))
    with pytest.raises(PlaybackFailed) as excinfo:
        await pc.speak("hola", "es")
    assert "no output device" in excinfo.value.reason


@pytest.mark.asyncio
async def test_new_speak_interrupts_current_utterance() -> None:
    synth = FakeSynth(block=True)
    pc = PlaybackController(synth)

    first = asyncio.create_task(pc.speak("one", "en"))
    await _spin()
    assert pc.is_speaking

    second = asyncio.create_task(pc.speak("two", "en"))
    await _spin()
    assert synth.cancelled == ["one"]
    assert await first is False

    synth.gates["two"].set()
    assert await second is True
    assert [c[0] for c in synth.calls] == ["one", "two"]
    assert not pc.is_speaking


def test_rate_to_percent() -> None:
    assert rate_to_percent(0.8) == "-20%"
    assert rate_to_percent(1.0) == "+0%"
    assert rate_to_percent(1.25) == "+25%"
    with pytest.raises(ValueError):
        rate_to_percent(0)
