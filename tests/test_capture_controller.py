from __future__ import annotations

import asyncio
import logging

import pytest

from voxlate.capture.base import SpeechCaptureProvider
from voxlate.capture.controller import CaptureController
from voxlate.contracts import (
    CaptureEnded,
    CaptureError,
    CaptureState,
    DeviceAccess,
    FinalResult,
    PartialResult,
)
from voxlate.errors import CaptureFailed, DeviceUnavailable, InvalidState, PermissionDenied


class FakeCaptureProvider(SpeechCaptureProvider):
    def __init__(self, events=(), *, access=DeviceAccess.GRANTED, available=True, hold_open=False, fail_with=None):
        self.events = list(events)
        self.access = access
        self.available = available
        self.hold_open = hold_open
        self.fail_with = fail_with
        self.streams_started: list[str] = []
        self.access_requests = 0
        self.stop_calls = 0

    @property
    def name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return self.available

    async def request_device_access(self) -> DeviceAccess:
        self.access_requests += 1
        if isinstance(self.access, Exception):
            raise self.access
        return self.access

    def start_stream(self, language: str):
        self.streams_started.append(language)
        return self._events()

    async def _events(self):
        for ev in self.events:
            await asyncio.sleep(0)
            yield ev
        if self.fail_with is not None:
            raise self.fail_with
        if self.hold_open:
            await asyncio.Event().wait()

    def stop_stream(self) -> None:
        self.stop_calls += 1


async def _spin(n: int = 10) -> None:
    for _ in range(n):
        await asyncio.sleep(0)


def _controller(provider):
    seen: dict[str, list] = {"partial": [], "final": [], "error": []}
    ctl = CaptureController(
        provider,
        source_language="en",
        on_partial=seen["partial"].append,
        on_finalized=seen["final"].append,
        on_error=seen["error"].append,
    )
    return ctl, seen


@pytest.mark.asyncio
async def test_capture_run_finalizes_transcript_and_releases_device() -> None:
    provider = FakeCaptureProvider(
        [PartialResult("hel"), PartialResult("hell"), FinalResult("hello"), CaptureEnded()]
    )
    ctl, seen = _controller(provider)

    await ctl.start()
    assert ctl.state is CaptureState.LISTENING
    await ctl.join()

    assert ctl.state is CaptureState.IDLE
    assert seen["partial"] == ["hel", "hell"]
    assert seen["final"] == ["hello"]
    assert seen["error"] == []
    assert provider.streams_started == ["en"]
    assert provider.stop_calls >= 1


@pytest.mark.asyncio
async def test_permission_denied_never_opens_stream() -> None:
    provider = FakeCaptureProvider(access=DeviceAccess.DENIED)
    ctl, seen = _controller(provider)

    with pytest.raises(PermissionDenied):
        await ctl.start()

    assert ctl.state is CaptureState.IDLE
    assert provider.access_requests == 1
    assert provider.streams_started == []
    assert seen == {"partial": [], "final": [], "error": []}


@pytest.mark.asyncio
async def test_access_request_failure_is_reported_as_permission_denied() -> None:
    provider = FakeCaptureProvider(access=OSError("consent dialog dismissed"))
    ctl, _seen = _controller(provider)

    with pytest.raises(PermissionDenied) as excinfo:
        await ctl.start()
    assert "consent dialog dismissed" in excinfo.value.reason
    assert provider.streams_started == []


@pytest.mark.asyncio
async def test_missing_capture_capability_is_device_unavailable() -> None:
    ctl, _ = _controller(None)
    with pytest.raises(DeviceUnavailable):
        await ctl.start()
    assert ctl.state is CaptureState.IDLE

    provider = FakeCaptureProvider(available=False)
    ctl, _ = _controller(provider)
    with pytest.raises(DeviceUnavailable):
        await ctl.start()
    assert provider.access_requests == 0


def test_stop_while_idle_is_silent_noop() -> None:
    provider = FakeCaptureProvider()
    ctl, seen = _controller(provider)

    assert ctl.stop() is None
    assert ctl.state is CaptureState.IDLE
    assert provider.stop_calls == 0
    assert seen["final"] == []


@pytest.mark.asyncio
async def test_start_while_listening_is_invalid_state() -> None:
    provider = FakeCaptureProvider(hold_open=True)
    ctl, _ = _controller(provider)
    await ctl.start()

    with pytest.raises(InvalidState):
        await ctl.start()
    assert provider.streams_started == ["en"]

    await ctl.aclose()


@pytest.mark.asyncio
async def test_stop_returns_committed_transcript_and_stops_delivery() -> None:
    provider = FakeCaptureProvider([FinalResult("hi"), PartialResult(" th")], hold_open=True)
    ctl, seen = _controller(provider)
    await ctl.start()
    await _spin()
    assert ctl.partial_text == " th"

    assert ctl.stop() == "hi"
    assert ctl.state is CaptureState.IDLE
    assert seen["final"] == ["hi"]
    assert provider.stop_calls == 1

    await ctl.join()
    assert seen["final"] == ["hi"]
    # second stop is a no-op
    assert ctl.stop() is None


@pytest.mark.asyncio
async def test_configure_language_rejected_while_listening() -> None:
    provider = FakeCaptureProvider(hold_open=True)
    ctl, _ = _controller(provider)
    ctl.configure("fr")
    assert ctl.source_language == "fr"

    await ctl.start()
    with pytest.raises(InvalidState):
        ctl.configure("de")
    assert ctl.source_language == "fr"
    assert provider.streams_started == ["fr"]

    await ctl.aclose()
    ctl.configure("de")
    assert ctl.source_language == "de"


@pytest.mark.asyncio
async def test_capture_error_event_returns_to_idle_and_reports() -> None:
    provider = FakeCaptureProvider([FinalResult("partial text"), CaptureError("network")])
    ctl, seen = _controller(provider)

    await ctl.start()
    await ctl.join()

    assert ctl.state is CaptureState.IDLE
    assert seen["final"] == []
    assert len(seen["error"]) == 1
    assert isinstance(seen["error"][0], CaptureFailed)
    assert "network" in seen["error"][0].reason
    assert provider.stop_calls >= 1


@pytest.mark.asyncio
async def test_stream_exception_is_converted_to_capture_failed() -> None:
    provider = FakeCaptureProvider([PartialResult("a")], fail_with=RuntimeError("device unplugged"))
    ctl, seen = _controller(provider)

    await ctl.start()
    await ctl.join()

    assert ctl.state is CaptureState.IDLE
    assert [type(e) for e in seen["error"]] == [CaptureFailed]
    assert "device unplugged" in seen["error"][0].reason


@pytest.mark.asyncio
async def test_cancel_discards_transcript() -> None:
    provider = FakeCaptureProvider([FinalResult("bye")], hold_open=True)
    ctl, seen = _controller(provider)
    await ctl.start()
    await _spin()

    ctl.cancel()
    await ctl.join()
    assert ctl.state is CaptureState.IDLE
    assert seen["final"] == []


@pytest.mark.asyncio
async def test_hook_failure_after_run_end_is_logged(caplog) -> None:
    provider = FakeCaptureProvider([FinalResult("hello"), CaptureEnded()])

    def _boom(text: str) -> None:
        raise RuntimeError(f"sink rejected {text!r}")

    ctl = CaptureController(
        provider,
        on_finalized=_boom,
        logger=logging.getLogger("voxlate.test.capture"),
    )
    with caplog.at_level(logging.ERROR, logger="voxlate.test.capture"):
        await ctl.start()
        await ctl.join()

    assert ctl.state is CaptureState.IDLE
    failed = [r for r in caplog.records if r.getMessage() == "capture_hook_failed"]
    assert len(failed) == 1
    assert failed[0].exc_info is not None
    assert "sink rejected" in str(failed[0].exc_info[1])


class SlowReleaseProvider(FakeCaptureProvider):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.order: list[str] = []

    def start_stream(self, language: str):
        self.order.append(f"open:{language}")
        return super().start_stream(language)

    async def wait_released(self) -> None:
        await asyncio.sleep(0.01)
        self.order.append("released")


@pytest.mark.asyncio
async def test_restart_opens_stream_only_after_previous_release() -> None:
    provider = SlowReleaseProvider(hold_open=True)
    ctl, _seen = _controller(provider)

    await ctl.start()
    await _spin()
    ctl.stop()
    await ctl.start("fr")

    assert provider.order == ["released", "open:en", "released", "open:fr"]
    await ctl.aclose()
    assert provider.order[-1] == "released"
