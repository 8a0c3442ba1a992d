from __future__ import annotations

import pytest

from voxlate.contracts import TranslationRequest
from voxlate.translate.argos import ArgosTranslator
from voxlate.translate.factory import get_translator
from voxlate.translate.stub import StubTranslator


@pytest.mark.asyncio
async def test_stub_translator_deterministic() -> None:
    tr = StubTranslator(delay_sec=0)
    out = await tr.translate(TranslationRequest(text="Hello world.", source_lang="en", target_lang="es"))
    assert tr.name == "stub"
    assert out == "[Translated from en to es] Hello world."


def test_stub_translator_rejects_negative_delay() -> None:
    with pytest.raises(ValueError):
        StubTranslator(delay_sec=-1)


def test_factory_selects_provider(monkeypatch) -> None:
    assert isinstance(get_translator("stub"), StubTranslator)
    assert isinstance(get_translator(" ARGOS "), ArgosTranslator)
    monkeypatch.setenv("VOXLATE_TRANSLATOR", "stub")
    assert isinstance(get_translator(), StubTranslator)
    with pytest.raises(ValueError):
        get_translator("nope")


@pytest.mark.asyncio
async def test_argos_same_language_passes_through(monkeypatch) -> None:
    tr = ArgosTranslator()

    def _boom(*_args):
        raise AssertionError("argos must not be called")

    monkeypatch.setattr(tr, "_translate_sync", _boom)
    out = await tr.translate(TranslationRequest(text="hola", source_lang="es-ES", target_lang="es"))
    assert out == "hola"


@pytest.mark.asyncio
async def test_argos_normalizes_codes_before_translating(monkeypatch) -> None:
    tr = ArgosTranslator()
    calls = []

    def _fake(text, from_code, to_code):
        calls.append((text, from_code, to_code))
        return "hello"

    monkeypatch.setattr(tr, "_translate_sync", _fake)
    out = await tr.translate(TranslationRequest(text="hola", source_lang="es-MX", target_lang="EN"))
    assert out == "hello"
    assert calls == [("hola", "es", "en")]


def test_argos_pivots_through_english() -> None:
    assert ArgosTranslator._legs("es", "en") == [("es", "en")]
    assert ArgosTranslator._legs("en", "ja") == [("en", "ja")]
    assert ArgosTranslator._legs("es", "ja") == [("es", "en"), ("en", "ja")]
