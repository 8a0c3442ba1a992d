from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from voxlate.asr.faster_whisper_pcm16 import FasterWhisperPCM16Transcriber
from voxlate.audio.mic import SoundDeviceMicSource
from voxlate.audio.utterance import EnergyVAD, UtteranceSegmenter
from voxlate.capture.whisper_provider import SoundDeviceWhisperProvider
from voxlate.playback.base import SpeechSynthesizer
from voxlate.playback.edge_tts_synth import EdgeTTSSynthesizer
from voxlate.translate.base import Translator
from voxlate.translate.factory import get_translator


@dataclass(frozen=True)
class SessionServices:
    capture: Optional[SoundDeviceWhisperProvider]
    translator: Translator
    synthesizer: Optional[SpeechSynthesizer]


def build_session_services(args: Any, logger: logging.Logger | None = None) -> SessionServices:
    mic = SoundDeviceMicSource(
        chunk_seconds=float(args.chunk_sec),
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )
    rms_th = float(args.rms_th)
    silence_chunks = int(args.silence_chunks)
    min_utter_sec = float(args.min_utter_sec)
    max_utter_sec = None if getattr(args, "max_utter_sec", None) is None else float(args.max_utter_sec)

    def _segmenter() -> UtteranceSegmenter:
        return UtteranceSegmenter(
            vad=EnergyVAD(rms_threshold=rms_th),
            silence_chunks=silence_chunks,
            min_utter_sec=min_utter_sec,
            max_utter_sec=max_utter_sec,
        )

    capture = SoundDeviceWhisperProvider(
        mic=mic,
        transcriber=FasterWhisperPCM16Transcriber(model_size=str(args.model)),
        segmenter_factory=_segmenter,
        logger=logger,
    )
    translator = get_translator(str(args.translator), stub_delay_sec=float(args.stub_delay_sec))

    synthesizer: Optional[SpeechSynthesizer] = None
    if str(args.tts).lower() == "edge":
        synthesizer = EdgeTTSSynthesizer(device=getattr(args, "output_device", None))

    return SessionServices(capture=capture, translator=translator, synthesizer=synthesizer)
