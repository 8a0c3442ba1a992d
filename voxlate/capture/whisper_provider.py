from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, AsyncIterator, Callable

from voxlate.app.logging_setup import log_event
from voxlate.asr.faster_whisper_pcm16 import FasterWhisperPCM16Transcriber
from voxlate.audio.mic import MicError, SoundDeviceMicSource
from voxlate.audio.utterance import UtteranceSegmenter
from voxlate.capture.base import SpeechCaptureProvider
from voxlate.contracts import AudioChunk, CaptureEnded, CaptureError, CaptureEvent, DeviceAccess, FinalResult
from voxlate.languages import normalize_code

_EOS = object()


class SoundDeviceWhisperProvider(SpeechCaptureProvider):
    """
    Microphone capture with utterance-level recognition.

    A reader thread pulls fixed-size chunks from PortAudio and hands them to
    the event loop; the energy VAD closes utterances, and each recognized
    segment of an utterance is emitted as a FinalResult.
    """

    def __init__(
        self,
        *,
        mic: SoundDeviceMicSource,
        transcriber: FasterWhisperPCM16Transcriber,
        segmenter_factory: Callable[[], UtteranceSegmenter],
        logger: logging.Logger | None = None,
    ) -> None:
        self.mic = mic
        self.transcriber = transcriber
        self.segmenter_factory = segmenter_factory
        self.logger = logger
        self._stop: threading.Event | None = None
        self._reader: threading.Thread | None = None

    @property
    def name(self) -> str:
        return "sounddevice+faster-whisper"

    def is_available(self) -> bool:
        return self.mic.has_input_device()

    async def request_device_access(self) -> DeviceAccess:
        try:
            await asyncio.to_thread(self.mic.check_access)
        except MicError as e:
            log_event(self.logger, logging.WARNING, "mic_access_denied", detail=str(e))
            return DeviceAccess.DENIED
        return DeviceAccess.GRANTED

    def start_stream(self, language: str) -> AsyncIterator[CaptureEvent]:
        if self._stop is not None and not self._stop.is_set():
            raise RuntimeError("recognition stream already running")
        stop = threading.Event()
        self._stop = stop
        return self._events(normalize_code(language) or None, stop)

    def stop_stream(self) -> None:
        if self._stop is not None:
            self._stop.set()

    async def wait_released(self) -> None:
        # the reader holds the input stream until its blocking read returns
        reader = self._reader
        if reader is not None and reader.is_alive():
            await asyncio.to_thread(reader.join)

    def _start_reader(self, stop: threading.Event, loop: asyncio.AbstractEventLoop, q: asyncio.Queue) -> None:
        def _put(item: Any) -> None:
            try:
                loop.call_soon_threadsafe(q.put_nowait, item)
            except RuntimeError:
                # loop already closed; nobody is listening any more
                stop.set()

        def _reader() -> None:
            try:
                for chunk in self.mic.chunks(stop):
                    _put(chunk)
            except Exception as e:
                _put(e)
            finally:
                _put(_EOS)

        reader = threading.Thread(target=_reader, name="voxlate-mic-reader", daemon=True)
        self._reader = reader
        reader.start()

    async def _recognize(self, utter: AudioChunk, language: str | None) -> list[str]:
        segments = await asyncio.to_thread(
            self.transcriber.transcribe_utterance,
            utter.pcm16,
            utter.sample_rate,
            utter.channels,
            utter.start_time,
            language,
        )
        log_event(
            self.logger,
            logging.DEBUG,
            "utterance_recognized",
            t0=round(utter.start_time, 2),
            dur=round(utter.duration, 2),
            segments=len(segments),
        )
        return [seg.text for seg in segments if seg.text.strip()]

    async def _events(self, language: str | None, stop: threading.Event) -> AsyncIterator[CaptureEvent]:
        loop = asyncio.get_running_loop()
        q: asyncio.Queue = asyncio.Queue()
        segmenter = self.segmenter_factory()
        emitted = 0
        self._start_reader(stop, loop, q)

        try:
            while True:
                item = await q.get()
                if item is _EOS:
                    break
                if isinstance(item, Exception):
                    yield CaptureError(str(item) or type(item).__name__)
                    return
                utter = segmenter.push(item)
                if utter is None:
                    continue
                try:
                    texts = await self._recognize(utter, language)
                except Exception as e:
                    yield CaptureError(f"recognition failed: {e}")
                    return
                for text in texts:
                    yield FinalResult(text if emitted == 0 else " " + text)
                    emitted += 1

            tail = segmenter.flush()
            if tail is not None:
                for text in await self._recognize(tail, language):
                    yield FinalResult(text if emitted == 0 else " " + text)
                    emitted += 1
            yield CaptureEnded()
        finally:
            stop.set()
