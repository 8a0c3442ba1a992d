from __future__ import annotations
import asyncio
from .base import Translator
from voxlate.contracts import TranslationRequest

class StubTranslator(Translator):
    def __init__(self, delay_sec: float = 1.0) -> None:
        if delay_sec < 0:
            raise ValueError("delay_sec must be >= 0")
        self.delay_sec = float(delay_sec)

    @property
    def name(self) -> str:
        return "stub"

    async def translate(self, req: TranslationRequest) -> str:
        if self.delay_sec:
            await asyncio.sleep(self.delay_sec)
        # Deterministic, test-friendly
        return f"[Translated from {req.source_lang} to {req.target_lang}] {req.text}"
