from __future__ import annotations

import asyncio
import logging
from typing import Optional

from voxlate.app.logging_setup import log_event
from voxlate.errors import DeviceUnavailable, PlaybackFailed
from voxlate.playback.base import SpeechSynthesizer

# Reduced rate for intelligibility.
SPEECH_RATE = 0.8


class PlaybackController:
    def __init__(
        self,
        synthesizer: Optional[SpeechSynthesizer],
        *,
        rate: float = SPEECH_RATE,
        logger: logging.Logger | None = None,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self.synthesizer = synthesizer
        self.rate = float(rate)
        self.logger = logger
        self._current: asyncio.Task | None = None

    @property
    def is_speaking(self) -> bool:
        return self._current is not None and not self._current.done()

    async def speak(self, text: str, language: str) -> bool:
        """
        Speak `text`; returns True when the utterance played to the end and
        False when there was nothing to say or a newer call interrupted it.
        """
        if not text:
            return False
        if self.synthesizer is None:
            raise DeviceUnavailable("Speech synthesis is not supported on this device.")

        self.interrupt()
        task = asyncio.get_running_loop().create_task(
            self.synthesizer.speak(text, language, self.rate),
            name="voxlate-playback",
        )
        self._current = task
        log_event(
            self.logger,
            logging.INFO,
            "playback_started",
            provider=self.synthesizer.name,
            language=language,
            chars=len(text),
            rate=self.rate,
        )
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._current is task and task.done():
                self._current = None

        if task.cancelled():
            log_event(self.logger, logging.INFO, "playback_interrupted", language=language)
            return False
        exc = task.exception()
        if exc is not None:
            log_event(self.logger, logging.ERROR, "playback_failed", detail=str(exc))
            raise PlaybackFailed(f"Speech synthesis failed: {exc}") from exc
        return True

    def interrupt(self) -> None:
        current = self._current
        if current is not None and not current.done():
            current.cancel()
        self._current = None

    async def aclose(self) -> None:
        current = self._current
        self.interrupt()
        if current is not None:
            await asyncio.wait({current})
