from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def speak(self, text: str, language: str, rate: float) -> None:
        """
        Speak `text` and return when playback has finished.
        A new call interrupts whatever this instance is currently playing;
        cancelling the awaiting task stops playback.
        """
