# repository.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, List

from pydantic import ValidationError as SchemaError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from domain import (
    CertificationPlan,
    CertificationStatus,
    NotificationSettings,
    WageConfig,
    WorkSession,
)
from errors import PersistenceError, WorkValueError

logger = logging.getLogger(__name__)


class StorageKeys:
    WAGE_CONFIG = "user_settings"
    WORK_SESSIONS = "work_sessions"
    CURRENT_SESSION = "currentSession"
    CERTIFICATION_PLANS = "certification_plans"
    NOTIFICATION_SETTINGS = "notification_settings"
    BACKUP_CREATED_AT = "backup_created_at"


def _utcnow() -> datetime:
    # current sqlmodel datetime columns reject naive values
    return datetime.now(timezone.utc)


class StoredValue(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=_utcnow)


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # serverless Postgres: no local pool, bounded connect time
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


class KeyValueStore:
    """String-keyed store of JSON values, one row per key.

    Every failure surfaces as PersistenceError; nothing is dropped silently.
    """

    def __init__(self, url: str = "sqlite:///workvalue.db", echo: bool = False):
        self.primary_url = url
        self.engine = build_engine(url, echo=echo)
        try:
            # fail fast on remote databases
            if not url.startswith("sqlite"):
                with self.engine.connect() as conn:
                    conn.execute(text("select 1"))
            SQLModel.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.exception("Could not open store at %s", url)
            raise PersistenceError(f"Could not open database: {e}") from e

    # ----- raw strings -----
    def get_string(self, key: str) -> str | None:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            logger.exception("Read failed for %s", key)
            raise PersistenceError(f"Read failed: {e}", key=key) from e

    def set_string(self, key: str, value: str) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key)
                if row is None:
                    row = StoredValue(key=key, value=value)
                else:
                    row.value = value
                    row.updated_at = _utcnow()
                session.add(row)
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.exception("Write failed for %s", key)
            raise PersistenceError(f"Write failed: {e}", key=key) from e

    # ----- JSON values -----
    def _get_json(self, key: str, expected: type) -> Any:
        raw = self.get_string(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored value is not valid JSON: {e}", key=key) from e
        if not isinstance(value, expected):
            raise PersistenceError(f"Expected a JSON {expected.__name__}", key=key)
        return value

    def _set_json(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value is not JSON serializable: {e}", key=key) from e
        return self.set_string(key, encoded)

    def get_map(self, key: str) -> dict | None:
        return self._get_json(key, dict)

    def set_map(self, key: str, value: dict) -> bool:
        return self._set_json(key, value)

    def get_list(self, key: str) -> list | None:
        return self._get_json(key, list)

    def set_list(self, key: str, value: list) -> bool:
        return self._set_json(key, value)

    # ----- housekeeping -----
    def remove(self, key: str) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
            return True
        except SQLAlchemyError as e:
            logger.exception("Delete failed for %s", key)
            raise PersistenceError(f"Delete failed: {e}", key=key) from e

    def remove_many(self, *keys: str) -> bool:
        """Deletes every key in one transaction: all of them or none."""
        try:
            with Session(self.engine) as session:
                for key in keys:
                    row = session.get(StoredValue, key)
                    if row is not None:
                        session.delete(row)
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.exception("Delete failed for %s", ", ".join(keys))
            raise PersistenceError(f"Delete failed: {e}", key=", ".join(keys)) from e

    def clear(self) -> bool:
        try:
            with Session(self.engine) as session:
                for row in session.exec(select(StoredValue)).all():
                    session.delete(row)
                session.commit()
            logger.info("Store cleared")
            return True
        except SQLAlchemyError as e:
            logger.exception("Clear failed")
            raise PersistenceError(f"Clear failed: {e}") from e

    def keys(self) -> set[str]:
        try:
            with Session(self.engine) as session:
                return set(session.exec(select(StoredValue.key)).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Listing keys failed: {e}") from e

    def contains(self, key: str) -> bool:
        return self.get_string(key) is not None

    def create_backup(self) -> dict:
        """Every stored key with its decoded value, plus the backup time."""
        backup = {}
        for key in sorted(self.keys()):
            raw = self.get_string(key)
            try:
                backup[key] = json.loads(raw)
            except json.JSONDecodeError:
                backup[key] = raw
        backup[StorageKeys.BACKUP_CREATED_AT] = datetime.now().isoformat()
        logger.info("Backup created (%d keys)", len(backup) - 1)
        return backup

    def restore_from_backup(self, backup: dict) -> bool:
        self.clear()
        for key, value in backup.items():
            if key == StorageKeys.BACKUP_CREATED_AT:
                continue
            self._set_json(key, value)
        logger.info("Backup restored (%d keys)", len(backup))
        return True


# =========================
# Schema records: the persisted shape of each entity
# =========================
class WageConfigRecord(SQLModel):
    monthly_salary: float
    hourly_salary: float
    overtime_multiplier: float
    monthly_work_hours: int
    daily_work_hours: int
    start_hour: int
    end_hour: int


class WorkSessionRecord(SQLModel):
    id: str
    start_time: datetime
    end_time: datetime | None = None
    scheduled_daily_minutes: int
    hourly_wage: float
    overtime_multiplier: float
    regular_minutes: int
    overtime_minutes: int
    service_overtime_minutes: int
    regular_income: float
    overtime_income: float
    service_overtime_loss: float
    is_service_overtime: bool
    lunch_notified: bool = False


class CertificationPlanRecord(SQLModel):
    id: str
    name: str
    cost: float
    study_hours: int
    company_salary_increase: float
    transfer_salary_increase: float
    created_at: datetime
    target_date: datetime
    acquired_date: datetime | None = None
    status: CertificationStatus


class NotificationSettingsRecord(SQLModel):
    enabled: bool
    break_reminder: bool
    lunch: bool
    work_end: bool
    overtime_warning: bool


def _encode(record_cls: type[SQLModel], entity) -> dict:
    return record_cls.model_validate(asdict(entity)).model_dump(mode="json")


def _decode(record_cls: type[SQLModel], entity_cls: type, data: Any, key: str):
    try:
        record = record_cls.model_validate(data)
        return entity_cls(**record.model_dump())
    except (SchemaError, WorkValueError, TypeError) as e:
        logger.error("Invalid %s record under %s: %s", entity_cls.__name__, key, e)
        raise PersistenceError(f"Invalid {entity_cls.__name__} record: {e}", key=key) from e


def serialize_wage_config(cfg: WageConfig) -> dict:
    return _encode(WageConfigRecord, cfg)


def deserialize_wage_config(data: Any, key: str = StorageKeys.WAGE_CONFIG) -> WageConfig:
    return _decode(WageConfigRecord, WageConfig, data, key)


def serialize_session(s: WorkSession) -> dict:
    return _encode(WorkSessionRecord, s)


def deserialize_session(data: Any, key: str = StorageKeys.WORK_SESSIONS) -> WorkSession:
    return _decode(WorkSessionRecord, WorkSession, data, key)


def serialize_plan(p: CertificationPlan) -> dict:
    return _encode(CertificationPlanRecord, p)


def deserialize_plan(data: Any, key: str = StorageKeys.CERTIFICATION_PLANS) -> CertificationPlan:
    return _decode(CertificationPlanRecord, CertificationPlan, data, key)


# =========================
# Entity load/save helpers
# =========================
def load_wage_config(store: KeyValueStore) -> WageConfig | None:
    data = store.get_map(StorageKeys.WAGE_CONFIG)
    return None if data is None else deserialize_wage_config(data)


def save_wage_config(store: KeyValueStore, cfg: WageConfig) -> bool:
    return store.set_map(StorageKeys.WAGE_CONFIG, serialize_wage_config(cfg))


def load_sessions(store: KeyValueStore) -> List[WorkSession]:
    rows = store.get_list(StorageKeys.WORK_SESSIONS) or []
    return [deserialize_session(r) for r in rows]


def save_sessions(store: KeyValueStore, sessions: List[WorkSession]) -> bool:
    return store.set_list(StorageKeys.WORK_SESSIONS, [serialize_session(s) for s in sessions])


def load_active_session(store: KeyValueStore) -> WorkSession | None:
    data = store.get_map(StorageKeys.CURRENT_SESSION)
    if data is None:
        return None
    return deserialize_session(data, key=StorageKeys.CURRENT_SESSION)


def save_active_session(store: KeyValueStore, s: WorkSession) -> bool:
    return store.set_map(StorageKeys.CURRENT_SESSION, serialize_session(s))


def clear_active_session(store: KeyValueStore) -> bool:
    return store.remove(StorageKeys.CURRENT_SESSION)


def load_plans(store: KeyValueStore) -> List[CertificationPlan]:
    rows = store.get_list(StorageKeys.CERTIFICATION_PLANS) or []
    return [deserialize_plan(r) for r in rows]


def save_plans(store: KeyValueStore, plans: List[CertificationPlan]) -> bool:
    return store.set_list(StorageKeys.CERTIFICATION_PLANS, [serialize_plan(p) for p in plans])


def load_notification_settings(store: KeyValueStore) -> NotificationSettings:
    data = store.get_map(StorageKeys.NOTIFICATION_SETTINGS)
    if data is None:
        return NotificationSettings()
    return _decode(NotificationSettingsRecord, NotificationSettings, data, StorageKeys.NOTIFICATION_SETTINGS)


def save_notification_settings(store: KeyValueStore, settings: NotificationSettings) -> bool:
    return store.set_map(StorageKeys.NOTIFICATION_SETTINGS, _encode(NotificationSettingsRecord, settings))


__all__ = [
    "StorageKeys",
    "StoredValue",
    "KeyValueStore",
    "build_engine",
    "serialize_wage_config",
    "deserialize_wage_config",
    "serialize_session",
    "deserialize_session",
    "serialize_plan",
    "deserialize_plan",
    "load_wage_config",
    "save_wage_config",
    "load_sessions",
    "save_sessions",
    "load_active_session",
    "save_active_session",
    "clear_active_session",
    "load_plans",
    "save_plans",
    "load_notification_settings",
    "save_notification_settings",
]
