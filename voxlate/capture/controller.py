from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from voxlate.app.logging_setup import log_event
from voxlate.capture.base import SpeechCaptureProvider
from voxlate.capture.transcript import TranscriptAccumulator
from voxlate.contracts import CaptureError, CaptureEvent, CaptureState, DeviceAccess, PartialResult
from voxlate.errors import CaptureFailed, DeviceUnavailable, InvalidState, PermissionDenied, VoxlateError


class CaptureController:
    """
    Owns the capture device handle and the recognition stream of one session.

    The device is held from a successful `start()` until `stop()` or a terminal
    CaptureError / CaptureEnded event. Provider failures never escape raw: they
    are converted to the error taxonomy before reaching the hooks or callers.
    """

    def __init__(
        self,
        provider: Optional[SpeechCaptureProvider],
        *,
        source_language: str = "en",
        on_partial: Optional[Callable[[str], None]] = None,
        on_finalized: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[VoxlateError], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.provider = provider
        self.on_partial = on_partial
        self.on_finalized = on_finalized
        self.on_error = on_error
        self.logger = logger
        self._source_language = source_language
        self._state = CaptureState.IDLE
        self._accumulator: TranscriptAccumulator | None = None
        self._pump: asyncio.Task | None = None
        self._run = 0

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is CaptureState.LISTENING

    @property
    def source_language(self) -> str:
        return self._source_language

    @property
    def partial_text(self) -> str:
        return self._accumulator.partial if self._accumulator is not None else ""

    def configure(self, source_language: str) -> None:
        if self.is_listening:
            raise InvalidState("Stop listening before changing the recognition language.")
        self._source_language = source_language

    async def start(self, source_language: str | None = None) -> None:
        provider = self.provider
        if provider is None or not provider.is_available():
            log_event(self.logger, logging.WARNING, "capture_unavailable")
            raise DeviceUnavailable("Speech capture is not supported on this device.")
        if self.is_listening:
            raise InvalidState("Already listening.")
        if source_language is not None:
            self.configure(source_language)

        try:
            access = await provider.request_device_access()
        except Exception as e:
            log_event(self.logger, logging.WARNING, "capture_access_failed", detail=str(e))
            raise PermissionDenied(f"Microphone access failed: {e}") from e
        if access is not DeviceAccess.GRANTED:
            log_event(self.logger, logging.WARNING, "capture_permission_denied")
            raise PermissionDenied("Microphone access was denied.")

        # the previous run may still be closing its input stream
        await provider.wait_released()

        # another start() may have won while permission or release was pending
        if self.is_listening:
            raise InvalidState("Already listening.")

        try:
            stream = provider.start_stream(self._source_language)
        except Exception as e:
            self._release()
            log_event(self.logger, logging.ERROR, "capture_stream_open_failed", detail=str(e))
            raise CaptureFailed(f"Could not open the recognition stream: {e}") from e

        self._run += 1
        self._accumulator = TranscriptAccumulator()
        self._state = CaptureState.LISTENING
        self._pump = asyncio.get_running_loop().create_task(
            self._consume(stream, self._run),
            name=f"voxlate-capture-{self._run}",
        )
        log_event(
            self.logger,
            logging.INFO,
            "capture_started",
            provider=provider.name,
            language=self._source_language,
            run=self._run,
        )

    def stop(self) -> Optional[str]:
        """
        Stop the running capture and return its committed transcript.
        No-op returning None while idle.
        """
        if not self.is_listening or self._accumulator is None:
            return None
        transcript = self._accumulator.finish()
        self._end_run()
        log_event(self.logger, logging.INFO, "capture_stopped", run=self._run, chars=len(transcript))
        if self.on_finalized is not None:
            self.on_finalized(transcript)
        return transcript

    def cancel(self) -> None:
        """Stop without finalizing; the committed transcript is discarded."""
        if not self.is_listening:
            return
        self._end_run()
        log_event(self.logger, logging.INFO, "capture_cancelled", run=self._run)

    async def join(self) -> None:
        """Wait until the event pump of the latest run has exited."""
        pump = self._pump
        if pump is not None and not pump.done():
            await asyncio.wait({pump})

    async def aclose(self) -> None:
        self.cancel()
        await self.join()
        if self.provider is not None:
            await self.provider.wait_released()

    def _release(self) -> None:
        if self.provider is None:
            return
        try:
            self.provider.stop_stream()
        except Exception:
            if self.logger is not None:
                self.logger.exception("capture_release_failed")

    def _end_run(self) -> None:
        self._state = CaptureState.IDLE
        self._accumulator = None
        pump = self._pump
        if pump is not None and pump is not asyncio.current_task() and not pump.done():
            pump.cancel()
        self._release()

    async def _consume(self, stream: AsyncIterator[CaptureEvent], run: int) -> None:
        try:
            async for event in stream:
                if run != self._run or self._accumulator is None:
                    return
                if isinstance(event, CaptureError):
                    self._fail(run, event.reason)
                    return
                done = self._accumulator.feed(event)
                if isinstance(event, PartialResult) and self.on_partial is not None:
                    self.on_partial(event.text)
                if done is not None:
                    self._finalize(run, done)
                    return
            # stream exhausted without an explicit end marker
            if run == self._run and self._accumulator is not None:
                self._finalize(run, self._accumulator.finish())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if run == self._run and self.is_listening:
                self._fail(run, str(e) or type(e).__name__)
            elif self.logger is not None:
                # the run already ended; a completion hook raised
                self.logger.exception("capture_hook_failed", extra={"run": run})
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _finalize(self, run: int, transcript: str) -> None:
        self._end_run()
        log_event(self.logger, logging.INFO, "capture_ended", run=run, chars=len(transcript))
        if self.on_finalized is not None:
            self.on_finalized(transcript)

    def _fail(self, run: int, reason: str) -> None:
        self._end_run()
        log_event(self.logger, logging.ERROR, "capture_error", run=run, detail=reason)
        err = CaptureFailed(f"Speech recognition error: {reason}")
        if self.on_error is not None:
            self.on_error(err)
