from __future__ import annotations
import asyncio
from .base import Translator
from voxlate.contracts import TranslationRequest
from voxlate.languages import normalize_code

_PIVOT = "en"


class ArgosTranslator(Translator):
    def __init__(self, auto_install: bool = True):
        self.auto_install = auto_install
        self._ready: set[tuple[str, str]] = set()

    @property
    def name(self) -> str:
        return "argos"

    @staticmethod
    def _legs(from_code: str, to_code: str) -> list[tuple[str, str]]:
        if _PIVOT in (from_code, to_code):
            return [(from_code, to_code)]
        return [(from_code, _PIVOT), (_PIVOT, to_code)]

    def _ensure_ready(self, from_code: str, to_code: str) -> None:
        if (from_code, to_code) in self._ready:
            return

        import argostranslate.package
        import argostranslate.translate

        installed = argostranslate.translate.get_installed_languages()
        have_from = any(l.code == from_code for l in installed)
        have_to = any(l.code == to_code for l in installed)

        if not (have_from and have_to):
            if not self.auto_install:
                raise RuntimeError("Argos model not installed and auto_install=False")

            argostranslate.package.update_package_index()
            available = argostranslate.package.get_available_packages()

            # Argos ships most pairs through English only.
            for leg_from, leg_to in self._legs(from_code, to_code):
                pkg = None
                for p in available:
                    if p.from_code == leg_from and p.to_code == leg_to:
                        pkg = p
                        break
                if pkg is None:
                    raise RuntimeError(f"No Argos package found for {leg_from}->{leg_to}")

                path = pkg.download()
                argostranslate.package.install_from_path(path)

        self._ready.add((from_code, to_code))

    def _translate_sync(self, text: str, from_code: str, to_code: str) -> str:
        self._ensure_ready(from_code, to_code)
        import argostranslate.translate
        return argostranslate.translate.translate(text, from_code, to_code)

    async def translate(self, req: TranslationRequest) -> str:
        from_code = normalize_code(req.source_lang)
        to_code = normalize_code(req.target_lang)
        if from_code == to_code:
            return req.text
        # package download and CTranslate2 inference both block
        return await asyncio.to_thread(self._translate_sync, req.text, from_code, to_code)
