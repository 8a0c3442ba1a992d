from __future__ import annotations

import asyncio

import pytest

from voxlate.app.main import ConsoleSink, format_status, handle_line
from voxlate.app.notifications import Notification, NotificationBus
from voxlate.contracts import TranslationRequest
from voxlate.session import SessionStateMachine
from voxlate.translate.base import Translator


class FakeTranslator(Translator):
    def __init__(self) -> None:
        self.calls: list[TranslationRequest] = []

    @property
    def name(self) -> str:
        return "fake"

    async def translate(self, req: TranslationRequest) -> str:
        self.calls.append(req)
        return f"<{req.target_lang}>{req.text}"


def _session(translator: Translator) -> SessionStateMachine:
    return SessionStateMachine(
        capture_provider=None,
        translator=translator,
        synthesizer=None,
        notifications=NotificationBus(),
    )


@pytest.mark.asyncio
async def test_plain_line_sets_text_and_translates() -> None:
    translator = FakeTranslator()
    session = _session(translator)
    out: list[str] = []

    assert await handle_line(session, "  good morning ", out.append) is True
    await session.settle()

    snap = session.snapshot()
    assert snap.input_text == "good morning"
    assert snap.translated_text == "<es>good morning"
    assert out == []


@pytest.mark.asyncio
async def test_language_commands() -> None:
    translator = FakeTranslator()
    session = _session(translator)
    out: list[str] = []

    await handle_line(session, "/target JA", out.append)
    await handle_line(session, "/source fr-CA", out.append)
    await handle_line(session, "/target klingon", out.append)

    snap = session.snapshot()
    assert (snap.source_language, snap.target_language) == ("fr", "ja")
    assert len(out) == 1 and "unsupported language" in out[0]


@pytest.mark.asyncio
async def test_quit_unknown_and_status_commands() -> None:
    session = _session(FakeTranslator())
    out: list[str] = []

    assert await handle_line(session, "", out.append) is True
    assert await handle_line(session, "/bogus", out.append) is True
    assert await handle_line(session, "/status", out.append) is True
    assert await handle_line(session, "/quit", out.append) is False
    assert out[0].startswith("Unknown command /bogus")
    assert out[1].startswith("English -> Spanish (idle)")


@pytest.mark.asyncio
async def test_listen_without_microphone_notifies() -> None:
    session = _session(FakeTranslator())
    out: list[str] = []
    await handle_line(session, "/listen", out.append)
    note = session.notifications.pop()
    assert note is not None and note.title == "Speech Not Available"
    assert out == []


def test_format_status_shows_error_and_translation() -> None:
    session = _session(FakeTranslator())
    session.set_input_text("hola")
    text = format_status(session.snapshot())
    assert "input:       hola" in text
    assert "translation: - [idle]" in text


def test_console_sink_prints_level_and_title() -> None:
    lines: list[str] = []
    ConsoleSink(lines.append).show(Notification(level="error", title="Oops", description="try again"))
    assert lines == ["[error] Oops: try again"]


@pytest.mark.asyncio
async def test_speak_task_is_tracked_until_done() -> None:
    from voxlate.app import main as app_main

    session = _session(FakeTranslator())
    out: list[str] = []
    await handle_line(session, "/speak", out.append)
    assert len(app_main._background) == 1

    await asyncio.wait(set(app_main._background))
    await asyncio.sleep(0)
    assert app_main._background == set()
    assert out == []


@pytest.mark.asyncio
async def test_speak_crash_is_reported(monkeypatch) -> None:
    from voxlate.app import main as app_main

    session = _session(FakeTranslator())

    async def _crash() -> bool:
        raise KeyError("voice table")

    monkeypatch.setattr(session, "speak", _crash)
    out: list[str] = []
    await handle_line(session, "/speak", out.append)
    await asyncio.wait(set(app_main._background))
    await asyncio.sleep(0)

    assert app_main._background == set()
    assert out == ["Playback crashed: 'voice table'"]
