from __future__ import annotations


class VoxlateError(RuntimeError):
    """Base for every error the session surfaces to the presentation layer."""

    default_reason = "Unexpected error."

    def __init__(self, reason: str | None = None) -> None:
        self.reason = str(reason or self.default_reason)
        super().__init__(self.reason)


class DeviceUnavailable(VoxlateError):
    default_reason = "No capture or playback capability on this platform."


class PermissionDenied(VoxlateError):
    default_reason = "Device access was refused."


class EmptyInput(VoxlateError):
    default_reason = "Input text is empty."


class TranslationFailed(VoxlateError):
    default_reason = "Translation provider failed."


class InvalidState(VoxlateError):
    default_reason = "Operation not valid in the current state."


class CaptureFailed(VoxlateError):
    default_reason = "Speech recognition stream failed."


class PlaybackFailed(VoxlateError):
    default_reason = "Speech synthesis failed."
