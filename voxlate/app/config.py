from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from voxlate.languages import SUPPORTED_CODES, normalize_code

DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "device": None,
    "output_device": None,
    "sr": 16000,
    "channels": 1,
    "chunk_sec": 0.5,
    "rms_th": 250.0,
    "silence_chunks": 2,
    "min_utter_sec": 0.6,
    "max_utter_sec": 6.0,
    "model": "tiny",
    "source_language": "en",
    "target_language": "es",
    "translator": "argos",
    "stub_delay_sec": 1.0,
    "tts": "edge",
    "speech_rate": 0.8,
    "auto_restart_on_language_change": False,
    "notification_queue_maxsize": 16,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("Voxlate", "Voxlate"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def language_code(value: str) -> str:
    """argparse type: accept "en", "EN", "en-US"; reject unsupported languages."""
    code = normalize_code(value)
    if code not in SUPPORTED_CODES:
        raise argparse.ArgumentTypeError(
            f"unsupported language {value!r} (choose from {', '.join(SUPPORTED_CODES)})"
        )
    return code


def load_default_config() -> dict[str, Any]:
    path = default_asset_config_path()
    if not path.exists():
        return copy.deepcopy(DEFAULTS)
    loaded = _load_json_dict(path)
    out = copy.deepcopy(DEFAULTS)
    for key in DEFAULTS.keys():
        if key in loaded:
            out[key] = loaded[key]
    return out


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="voxlate", description="Speak or type, translate, listen.")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument(
        "--output-device",
        type=int,
        default=defaults["output_device"],
        help="sounddevice output device id for spoken translations",
    )
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--chunk-sec", type=float, default=defaults["chunk_sec"], help="mic chunk size in seconds")
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for speech VAD")
    p.add_argument(
        "--silence-chunks",
        type=int,
        default=defaults["silence_chunks"],
        help="finalize an utterance after this many non-speech chunks",
    )
    p.add_argument(
        "--min-utter-sec",
        type=float,
        default=defaults["min_utter_sec"],
        help="ignore utterances shorter than this",
    )
    p.add_argument(
        "--max-utter-sec",
        type=float,
        default=defaults["max_utter_sec"],
        help="force finalize while continuously speaking (seconds)",
    )
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument(
        "--source-language",
        type=language_code,
        default=defaults["source_language"],
        help="language spoken or typed",
    )
    p.add_argument(
        "--target-language",
        type=language_code,
        default=defaults["target_language"],
        help="language to translate into",
    )
    p.add_argument("--translator", default=defaults["translator"], choices=["argos", "stub"], help="translation provider")
    p.add_argument(
        "--stub-delay-sec",
        type=float,
        default=defaults["stub_delay_sec"],
        help="simulated latency of the stub translator",
    )
    p.add_argument("--tts", default=defaults["tts"], choices=["edge", "none"], help="speech synthesis provider")
    p.add_argument("--speech-rate", type=float, default=defaults["speech_rate"], help="playback speed factor")
    p.add_argument(
        "--auto-restart-on-language-change",
        action=argparse.BooleanOptionalAction,
        default=defaults["auto_restart_on_language_change"],
        help="restart listening when the source language changes mid-capture",
    )
    p.add_argument(
        "--notification-queue-maxsize",
        type=int,
        default=defaults["notification_queue_maxsize"],
        help="max pending notifications before the oldest is dropped",
    )
    p.add_argument("--debug", action="store_true", help="log debug events (stale results, utterances)")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    return args
