from __future__ import annotations
import os
from .base import Translator
from .argos import ArgosTranslator
from .stub import StubTranslator

def get_translator(provider: str | None = None, *, stub_delay_sec: float = 1.0) -> Translator:
    provider = (provider or os.getenv("VOXLATE_TRANSLATOR", "argos")).lower().strip()

    if provider == "stub":
        return StubTranslator(delay_sec=stub_delay_sec)
    if provider == "argos":
        return ArgosTranslator()

    raise ValueError(f"Unknown translator provider: {provider}")
