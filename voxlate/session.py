from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from voxlate.app.diagnostics import notification_for_error, notification_for_success
from voxlate.app.logging_setup import log_event
from voxlate.app.notifications import Notification, NotificationBus
from voxlate.capture.base import SpeechCaptureProvider
from voxlate.capture.controller import CaptureController
from voxlate.contracts import CaptureState, TranslationRequest, TranslationResult, TranslationState
from voxlate.errors import InvalidState, TranslationFailed, VoxlateError
from voxlate.playback.base import SpeechSynthesizer
from voxlate.playback.controller import SPEECH_RATE, PlaybackController
from voxlate.translate.base import Translator
from voxlate.translate.coordinator import TranslationCoordinator


@dataclass(frozen=True)
class SessionSnapshot:
    source_language: str
    target_language: str
    input_text: str
    translated_text: str
    capture_state: CaptureState
    translation_state: TranslationState
    partial_text: str = ""
    last_error: Optional[str] = None
    is_speaking: bool = False

    @property
    def is_listening(self) -> bool:
        return self.capture_state is CaptureState.LISTENING

    @property
    def is_translating(self) -> bool:
        return self.capture_state is CaptureState.IDLE and self.translation_state is TranslationState.IN_FLIGHT


class SessionStateMachine:
    """
    Orchestrates one interactive translation session.

    State is the cross product of the capture and translation controllers.
    Translation only starts from a finalized transcript or an explicit
    request, never while capture is still delivering events.

    Intent methods do not raise taxonomy errors: each error is recorded in
    `last_error`, published once on the notification bus after the state
    change has been applied, and the method returns a falsy value.
    """

    def __init__(
        self,
        *,
        capture_provider: Optional[SpeechCaptureProvider],
        translator: Translator,
        synthesizer: Optional[SpeechSynthesizer],
        source_language: str = "en",
        target_language: str = "es",
        speech_rate: float = SPEECH_RATE,
        auto_restart_on_language_change: bool = False,
        notifications: NotificationBus | None = None,
        on_change: Optional[Callable[[SessionSnapshot], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.notifications = notifications if notifications is not None else NotificationBus()
        self.on_change = on_change
        self.logger = logger
        self.auto_restart_on_language_change = bool(auto_restart_on_language_change)
        self._source_language = source_language
        self._target_language = target_language
        self._input_text = ""
        self._last_error: str | None = None

        self.capture = CaptureController(
            capture_provider,
            source_language=source_language,
            on_partial=self._on_partial,
            on_finalized=self._on_transcript,
            on_error=self._report,
            logger=logger,
        )
        self.translation = TranslationCoordinator(
            translator,
            on_result=self._on_translation,
            logger=logger,
        )
        self.playback = PlaybackController(synthesizer, rate=speech_rate, logger=logger)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            source_language=self._source_language,
            target_language=self._target_language,
            input_text=self._input_text,
            translated_text=self.translation.translated_text,
            capture_state=self.capture.state,
            translation_state=self.translation.state,
            partial_text=self.capture.partial_text,
            last_error=self._last_error,
            is_speaking=self.playback.is_speaking,
        )

    # --- user intents ---

    async def start_capture(self) -> bool:
        try:
            await self.capture.start(self._source_language)
        except VoxlateError as e:
            self._report(e)
            return False
        self._last_error = None
        self._changed()
        return True

    def stop_capture(self) -> Optional[str]:
        return self.capture.stop()

    async def toggle_capture(self) -> bool:
        """Returns True when the session is listening afterwards."""
        if self.capture.is_listening:
            self.stop_capture()
            return False
        return await self.start_capture()

    def set_input_text(self, text: str) -> None:
        self._input_text = str(text or "")
        self._changed()

    def request_translation(self) -> "Optional[asyncio.Task[TranslationResult]]":
        return self._submit(self._input_text)

    async def speak(self) -> bool:
        try:
            return await self.playback.speak(self.translation.translated_text, self._target_language)
        except VoxlateError as e:
            self._report(e)
            return False

    async def set_source_language(self, code: str) -> bool:
        if not self.capture.is_listening:
            self._source_language = code
            self.capture.configure(code)
            self._changed()
            return True
        if not self.auto_restart_on_language_change:
            self._report(InvalidState("Stop listening before changing the source language."))
            return False

        # The committed part was spoken in the old language; finalize it first.
        self.capture.stop()
        self._source_language = code
        self.capture.configure(code)
        log_event(self.logger, logging.INFO, "capture_language_restart", language=code)
        return await self.start_capture()

    def set_target_language(self, code: str) -> None:
        self._target_language = code
        self._changed()

    async def settle(self) -> None:
        """Wait for the running capture and every pending translation."""
        await self.capture.join()
        await self.translation.wait_idle()

    async def aclose(self) -> None:
        await self.capture.aclose()
        await self.playback.aclose()
        await self.translation.aclose()
        self._changed()

    # --- completions ---

    def _submit(self, text: str) -> "Optional[asyncio.Task[TranslationResult]]":
        req = TranslationRequest(
            text=text,
            source_lang=self._source_language,
            target_lang=self._target_language,
        )
        try:
            task = self.translation.submit(req)
        except VoxlateError as e:
            self._report(e)
            return None
        self._changed()
        return task

    def _on_partial(self, text: str) -> None:
        self._changed()

    def _on_transcript(self, transcript: str) -> None:
        text = (transcript or "").strip()
        if not text:
            self._changed()
            return
        self._input_text = text
        self._submit(text)

    def _on_translation(self, result: TranslationResult) -> None:
        if result.ok:
            self._last_error = None
            self._changed()
            self._notify(notification_for_success())
            return
        self._report(TranslationFailed(result.error))

    def _report(self, err: VoxlateError) -> None:
        self._last_error = err.reason
        self._changed()
        self._notify(notification_for_error(err))

    def _notify(self, note: Notification) -> None:
        log_event(
            self.logger,
            logging.INFO if note.level == "info" else logging.WARNING,
            "session_notification",
            note_level=note.level,
            title=note.title,
        )
        self.notifications.push(note)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())
