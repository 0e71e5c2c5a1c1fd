from __future__ import annotations

import os
from pathlib import Path

from core.models import DEFAULT_BASE_MONTHLY_HOURS, DEFAULT_OVERHEAD_PER_HOUR, DEFAULT_TARGET_MARGIN

BASE_DIR = Path(__file__).parent


def load_dotenv(path: Path = BASE_DIR / ".env") -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


load_dotenv()

STORAGE_DIR = Path(os.getenv("STAFFPLAN_STORAGE_DIR", str(BASE_DIR / "storage")))
LOG_LEVEL = os.getenv("STAFFPLAN_LOG_LEVEL", "INFO")
LOG_JSON = env_bool("STAFFPLAN_LOG_JSON", False)
CORS_ORIGINS = [
    origin.strip() for origin in os.getenv("STAFFPLAN_CORS_ORIGINS", "*").split(",") if origin.strip()
]

OVERHEAD_PER_HOUR = env_float("STAFFPLAN_DEFAULT_OVERHEAD_PER_HOUR", DEFAULT_OVERHEAD_PER_HOUR)
TARGET_MARGIN = env_float("STAFFPLAN_DEFAULT_TARGET_MARGIN", DEFAULT_TARGET_MARGIN)
BASE_MONTHLY_HOURS = env_float("STAFFPLAN_DEFAULT_BASE_MONTHLY_HOURS", DEFAULT_BASE_MONTHLY_HOURS)
