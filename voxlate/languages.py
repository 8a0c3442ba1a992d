from __future__ import annotations

# code -> display name, edge-tts voice
LANGUAGES: dict[str, dict[str, str]] = {
    "en": {"name": "English", "voice": "en-US-GuyNeural"},
    "es": {"name": "Spanish", "voice": "es-ES-AlvaroNeural"},
    "fr": {"name": "French", "voice": "fr-FR-HenriNeural"},
    "de": {"name": "German", "voice": "de-DE-ConradNeural"},
    "it": {"name": "Italian", "voice": "it-IT-DiegoNeural"},
    "pt": {"name": "Portuguese", "voice": "pt-BR-AntonioNeural"},
    "ja": {"name": "Japanese", "voice": "ja-JP-KeitaNeural"},
    "ko": {"name": "Korean", "voice": "ko-KR-InJoonNeural"},
    "zh": {"name": "Chinese", "voice": "zh-CN-YunxiNeural"},
    "ar": {"name": "Arabic", "voice": "ar-SA-HamedNeural"},
}
SUPPORTED_CODES: tuple[str, ...] = tuple(LANGUAGES.keys())


def normalize_code(code: str) -> str:
    """Lower-case a tag and drop any region suffix ("en-US" -> "en")."""
    return str(code or "").strip().replace("_", "-").split("-")[0].lower()


def language_name(code: str) -> str:
    lang = LANGUAGES.get(normalize_code(code))
    if lang:
        return lang["name"]
    return str(code).upper()


def voice_for(code: str) -> str:
    lang = LANGUAGES.get(normalize_code(code))
    if lang is None:
        raise ValueError(f"No synthesis voice for language: {code}")
    return lang["voice"]
