import json
import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _sport_durations(raw: str) -> Dict[str, int]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in SPORT_DURATIONS_JSON: {e}")
    if not isinstance(data, dict):
        raise ValueError("SPORT_DURATIONS_JSON must be a JSON object of sport -> minutes")
    return {str(sport): int(minutes) for sport, minutes in data.items()}


DEFAULT_MIN_REST_MINUTES = _int_env("DEFAULT_MIN_REST_MINUTES", 60)
DEFAULT_MATCH_DURATION_MINUTES = _int_env("DEFAULT_MATCH_DURATION_MINUTES", 60)
SLOT_INTERVAL_MINUTES = _int_env("SLOT_INTERVAL_MINUTES", 15)
MAX_MATCH_DURATION_MINUTES = _int_env("MAX_MATCH_DURATION_MINUTES", 240)
SPORT_DURATIONS: Dict[str, int] = _sport_durations(os.getenv("SPORT_DURATIONS_JSON", ""))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS: List[str] = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())
