from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any, Callable

from voxlate.app.config import language_code, resolve_args
from voxlate.app.logging_setup import setup_app_logger
from voxlate.app.notifications import Notification, NotificationBus, drain_notifications
from voxlate.app.services import build_session_services
from voxlate.audio.mic import MicError, SoundDeviceMicSource
from voxlate.languages import LANGUAGES, language_name
from voxlate.session import SessionSnapshot, SessionStateMachine

_POLL_SEC = 0.1
_MAX_NOTES_PER_TICK = 8

# the loop only keeps weak references to tasks
_background: set[asyncio.Task] = set()

HELP = """\
Type text and press Enter to translate it. Commands:
  /listen          start or stop voice input
  /translate       translate the current text again
  /speak           speak the last translation
  /source <code>   set the input language
  /target <code>   set the output language
  /languages       list language codes
  /status          show the session state
  /help            show this help
  /quit            exit"""


class ConsoleSink:
    def __init__(self, out: Callable[[str], Any] = print) -> None:
        self.out = out

    def show(self, note: Notification) -> None:
        self.out(f"[{note.level}] {note.title}: {note.description}")


def format_status(snap: SessionSnapshot) -> str:
    if snap.is_listening:
        activity = "listening"
    elif snap.is_translating:
        activity = "translating"
    else:
        activity = "idle"
    lines = [
        f"{language_name(snap.source_language)} -> {language_name(snap.target_language)} ({activity})",
        f"input:       {snap.input_text or '-'}",
        f"translation: {snap.translated_text or '-'} [{snap.translation_state.value}]",
    ]
    if snap.partial_text:
        lines.append(f"hearing:     {snap.partial_text}")
    if snap.last_error:
        lines.append(f"last error:  {snap.last_error}")
    return "\n".join(lines)


def _forget(task: asyncio.Task, out: Callable[[str], Any]) -> None:
    _background.discard(task)
    if not task.cancelled() and task.exception() is not None:
        out(f"Playback crashed: {task.exception()}")


async def handle_line(session: SessionStateMachine, line: str, out: Callable[[str], Any] = print) -> bool:
    """Apply one console line to the session; False means quit."""
    text = line.strip()
    if not text:
        return True
    if not text.startswith("/"):
        session.set_input_text(text)
        session.request_translation()
        return True

    cmd, _, arg = text.partition(" ")
    cmd = cmd.lower()
    arg = arg.strip()
    if cmd in ("/quit", "/exit"):
        return False
    if cmd == "/help":
        out(HELP)
    elif cmd == "/listen":
        listening = await session.toggle_capture()
        if listening:
            out("Listening... speak now (/listen again to stop)")
    elif cmd == "/translate":
        session.request_translation()
    elif cmd == "/speak":
        # playback runs in the background; the prompt stays usable
        task = asyncio.get_running_loop().create_task(session.speak(), name="voxlate-console-speak")
        _background.add(task)
        task.add_done_callback(lambda t: _forget(t, out))
    elif cmd in ("/source", "/target"):
        try:
            code = language_code(arg)
        except argparse.ArgumentTypeError as e:
            out(str(e))
            return True
        if cmd == "/source":
            await session.set_source_language(code)
        else:
            session.set_target_language(code)
    elif cmd == "/languages":
        out("\n".join(f"  {code}  {lang['name']}" for code, lang in LANGUAGES.items()))
    elif cmd == "/status":
        out(format_status(session.snapshot()))
    else:
        out(f"Unknown command {cmd}. Type /help.")
    return True


async def _poll_notifications(bus: NotificationBus, sink: ConsoleSink) -> None:
    while True:
        drain_notifications(bus, sink, max_items=_MAX_NOTES_PER_TICK)
        await asyncio.sleep(_POLL_SEC)


async def run_console(args: Any, logger: logging.Logger | None = None, reader: Callable[[str], str] = input) -> int:
    services = build_session_services(args, logger=logger)
    bus = NotificationBus(maxsize=max(1, int(args.notification_queue_maxsize)))
    session = SessionStateMachine(
        capture_provider=services.capture,
        translator=services.translator,
        synthesizer=services.synthesizer,
        source_language=str(args.source_language),
        target_language=str(args.target_language),
        speech_rate=float(args.speech_rate),
        auto_restart_on_language_change=bool(args.auto_restart_on_language_change),
        notifications=bus,
        logger=logger,
    )
    sink = ConsoleSink()
    poller = asyncio.get_running_loop().create_task(_poll_notifications(bus, sink))
    print(HELP)
    try:
        while True:
            try:
                line = await asyncio.to_thread(reader, "> ")
            except EOFError:
                break
            if not await handle_line(session, line):
                break
    finally:
        poller.cancel()
        await session.aclose()
        if _background:
            await asyncio.wait(set(_background))
        drain_notifications(bus, sink, max_items=bus.q.maxsize)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "")), "argv": argv or []})

    if args.list_devices:
        try:
            print(SoundDeviceMicSource.list_devices())
        except MicError as e:
            print(str(e))
            return 1
        return 0

    try:
        return asyncio.run(run_console(args, logger=logger))
    except KeyboardInterrupt:
        logger.info("app_keyboard_interrupt")
        return 0
    except Exception:
        logger.exception("app_crash")
        print(f"voxlate crashed. See log: {log_path}")
        return 1
    finally:
        logger.info("app_stop")


if __name__ == "__main__":
    raise SystemExit(main())
