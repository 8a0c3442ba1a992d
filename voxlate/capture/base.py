from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from voxlate.contracts import CaptureEvent, DeviceAccess


class SpeechCaptureProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    def is_available(self) -> bool:
        """False when the platform exposes no capture capability at all."""
        return True

    @abstractmethod
    async def request_device_access(self) -> DeviceAccess: ...

    @abstractmethod
    def start_stream(self, language: str) -> AsyncIterator[CaptureEvent]:
        """Open the recognition stream; events arrive in order until CaptureEnded."""
        raise NotImplementedError

    @abstractmethod
    def stop_stream(self) -> None:
        """Release the device. Must be safe to call more than once."""
        raise NotImplementedError

    async def wait_released(self) -> None:
        """Return once the device from the last stream is actually closed."""
        return None
