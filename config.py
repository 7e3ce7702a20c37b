# config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

# =========================
# Default wage settings (typical salaried worker)
# =========================
DEFAULT_MONTHLY_SALARY = 300000.0
DEFAULT_MONTHLY_WORK_HOURS = 160
DEFAULT_DAILY_WORK_HOURS = 8
DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 18
DEFAULT_OVERTIME_MULTIPLIER = 1.25
DEFAULT_HOURLY_SALARY = DEFAULT_MONTHLY_SALARY / DEFAULT_MONTHLY_WORK_HOURS

# =========================
# Validation bounds
# =========================
MIN_MONTHLY_SALARY = 100000.0
MAX_MONTHLY_SALARY = 10000000.0
MIN_HOURLY_SALARY = 500.0
MAX_HOURLY_SALARY = 50000.0
MIN_MONTHLY_WORK_HOURS = 40
MAX_MONTHLY_WORK_HOURS = 300
MIN_DAILY_WORK_HOURS = 1
MAX_DAILY_WORK_HOURS = 16
MIN_OVERTIME_MULTIPLIER = 1.0
MAX_OVERTIME_MULTIPLIER = 3.0

MIN_PLAN_COST = 0.0
MAX_PLAN_COST = 10000000.0
MIN_STUDY_HOURS = 1
MAX_STUDY_HOURS = 10000
MAX_PLAN_NAME_LENGTH = 50

# =========================
# Timer thresholds
# =========================
TICK_SECONDS = 1.0
BREAK_REMINDER_SECONDS = 3600
LUNCH_START_HOUR = 12
LUNCH_END_HOUR = 13
LUNCH_MIN_ELAPSED_SECONDS = 3 * 3600

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_HANDLER_NAME = "workvalue"


def _pick_data_dir() -> Path:
    candidates = []
    for var in ("WORKVALUE_DATA_DIR", "DATA_DIR"):
        env = os.getenv(var)
        if env:
            candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


@dataclass(frozen=True)
class AppConfig:
    database_url: str
    data_dir: Path
    log_level: str = "INFO"
    tick_seconds: float = TICK_SECONDS
    echo_sql: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        data_dir = _pick_data_dir()
        default_sqlite = f"sqlite:///{(data_dir / 'workvalue.db').as_posix()}"
        return cls(
            database_url=os.getenv("DATABASE_URL", default_sqlite),
            data_dir=data_dir,
            log_level=os.getenv("WORKVALUE_LOG_LEVEL", "INFO").upper(),
            tick_seconds=float(os.getenv("WORKVALUE_TICK_SECONDS", TICK_SECONDS)),
            echo_sql=os.getenv("WORKVALUE_ECHO_SQL", "") in ("1", "true", "yes"),
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Installs a single stream handler on the root logger."""
    root = logging.getLogger()
    if not any(h.get_name() == LOG_HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.set_name(LOG_HANDLER_NAME)
        root.addHandler(handler)
    root.setLevel(level)
