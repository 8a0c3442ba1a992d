from __future__ import annotations
from abc import ABC, abstractmethod
from voxlate.contracts import TranslationRequest

class Translator(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def translate(self, req: TranslationRequest) -> str:
        """Return the translated text; raise on failure."""
