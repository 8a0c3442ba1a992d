from __future__ import annotations

import asyncio
import functools
import itertools
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from voxlate.app.logging_setup import log_event
from voxlate.contracts import TranslationRequest, TranslationResult, TranslationState
from voxlate.errors import EmptyInput
from voxlate.translate.base import Translator


class TranslationCoordinator:
    """
    Serializes translation requests by submission order.

    Superseded requests are not cancelled; their results are dropped when they
    arrive, so only the latest submission can update state ("last writer wins
    by submission order, not completion order").
    """

    def __init__(
        self,
        translator: Translator,
        *,
        on_result: Optional[Callable[[TranslationResult], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.translator = translator
        self.on_result = on_result
        self.logger = logger
        self._ids = itertools.count(1)
        self._latest: TranslationRequest | None = None
        self._state = TranslationState.IDLE
        self._settled = TranslationState.IDLE
        self._translated_text = ""
        self._last_result: TranslationResult | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> TranslationState:
        return self._state

    @property
    def translated_text(self) -> str:
        return self._translated_text

    @property
    def latest_request(self) -> TranslationRequest | None:
        return self._latest

    @property
    def last_result(self) -> TranslationResult | None:
        return self._last_result

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, request: TranslationRequest) -> "asyncio.Task[TranslationResult]":
        if not (request.text or "").strip():
            raise EmptyInput("Nothing to translate.")

        stamped = replace(request, request_id=next(self._ids))
        superseded = self._latest if self._state is TranslationState.IN_FLIGHT else None
        self._latest = stamped
        self._state = TranslationState.IN_FLIGHT

        task = asyncio.get_running_loop().create_task(
            self._run(stamped),
            name=f"voxlate-translate-{stamped.request_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._done, stamped.request_id))
        log_event(
            self.logger,
            logging.INFO,
            "translate_submitted",
            request_id=stamped.request_id,
            superseded=None if superseded is None else superseded.request_id,
            source_lang=stamped.source_lang,
            target_lang=stamped.target_lang,
            chars=len(stamped.text),
        )
        return task

    async def translate(self, request: TranslationRequest) -> TranslationResult:
        # a caller giving up (timeout, cancellation) does not withdraw the request
        return await asyncio.shield(self.submit(request))

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def aclose(self) -> None:
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
        if self._state is TranslationState.IN_FLIGHT:
            self._state = self._settled

    async def _run(self, request: TranslationRequest) -> TranslationResult:
        t0 = time.perf_counter()
        try:
            text = await self.translator.translate(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            result = TranslationResult(
                request=request,
                provider=self.translator.name,
                error=str(e) or type(e).__name__,
            )
        else:
            result = TranslationResult(
                request=request,
                translated_text=str(text),
                provider=self.translator.name,
            )
        ms = round((time.perf_counter() - t0) * 1000.0, 2)
        self._apply(result, ms)
        return result

    def _done(self, request_id: int, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled():
            return
        # a cancelled latest request never reports; fall back to the last outcome
        latest = self._latest
        if latest is not None and latest.request_id == request_id and self._state is TranslationState.IN_FLIGHT:
            self._state = self._settled
            log_event(self.logger, logging.INFO, "translate_cancelled", request_id=request_id)

    def _apply(self, result: TranslationResult, ms: float) -> None:
        request_id = result.request.request_id
        if self._latest is None or request_id != self._latest.request_id:
            log_event(
                self.logger,
                logging.DEBUG,
                "translate_stale_dropped",
                request_id=request_id,
                latest=None if self._latest is None else self._latest.request_id,
                ok=result.ok,
                ms=ms,
            )
            return

        self._last_result = result
        if result.ok:
            self._state = self._settled = TranslationState.SUCCEEDED
            self._translated_text = result.translated_text
            log_event(self.logger, logging.INFO, "translate_done", request_id=request_id, ms=ms)
        else:
            # keep the last good translation visible
            self._state = self._settled = TranslationState.FAILED
            log_event(
                self.logger,
                logging.WARNING,
                "translate_failed",
                request_id=request_id,
                detail=result.error,
                ms=ms,
            )
        if self.on_result is not None:
            self.on_result(result)
