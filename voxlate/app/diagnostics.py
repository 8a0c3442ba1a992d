from __future__ import annotations

from voxlate.app.notifications import Notification
from voxlate.errors import (
    CaptureFailed,
    DeviceUnavailable,
    EmptyInput,
    InvalidState,
    PermissionDenied,
    PlaybackFailed,
    TranslationFailed,
    VoxlateError,
)

# error type -> (level, title, remedy)
_REMEDIES: dict[type, tuple[str, str, str]] = {
    DeviceUnavailable: (
        "error",
        "Speech Not Available",
        "This device has no usable audio input or output. Type your text instead.",
    ),
    PermissionDenied: (
        "error",
        "Microphone Access Denied",
        "Please allow microphone access to use voice input, then try again.",
    ),
    CaptureFailed: (
        "error",
        "Speech Recognition Error",
        "Please check your microphone and its permissions, then start again.",
    ),
    TranslationFailed: (
        "error",
        "Translation Error",
        "Failed to translate text. Please try again.",
    ),
    PlaybackFailed: (
        "error",
        "Playback Error",
        "Could not speak the translation. Check the audio output and retry.",
    ),
    EmptyInput: (
        "warning",
        "Nothing to Translate",
        "Type or speak some text first.",
    ),
    InvalidState: (
        "warning",
        "Action Not Available",
        "Finish or stop the current operation first.",
    ),
}


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "no argos package" in s or "argos model not installed" in s:
        return "No offline model for this language pair. Pick another pair or allow model download."
    if "portaudio" in s or ("sounddevice" in s and "failed" in s):
        return "Audio device init failed. Check device selection and app mic permissions."
    if "no synthesis voice" in s:
        return "Spoken output is not available for this language."
    return ""


def notification_for_error(err: VoxlateError) -> Notification:
    level, title, remedy = "error", "Error", "Check logs for full traceback."
    for cls in type(err).__mro__:
        if cls in _REMEDIES:
            level, title, remedy = _REMEDIES[cls]
            break
    cause = summarize_exception(err.reason)
    hint = hint_for_exception(cause)
    parts = [cause, hint or remedy]
    return Notification(level=level, title=title, description=" ".join(p for p in parts if p))


def notification_for_success() -> Notification:
    return Notification(
        level="info",
        title="Translation Complete",
        description="Text has been successfully translated.",
    )
