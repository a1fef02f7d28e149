"""Entity store: one interface, an in-memory and a relational implementation.

Both backends hand out the same detached pydantic records from ``schemas`` and
share the rules for defaults and server-assigned timestamps, so callers never
depend on which one was configured at startup.
"""
from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import structlog
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

import crud
import database
import errors
import lifecycle
import models
from schemas import MAX_ID, RECORD_TYPES, EntityKind, UserInDB, ensure_utc
from settings import Settings

logger = structlog.get_logger(__name__)

# Fields the server owns; client-supplied values are dropped
_SERVER_FIELDS = ("id", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_storable_id(value: Optional[int]) -> bool:
    """Ids outside the INTEGER column range can never match a row."""
    return value is not None and 1 <= value <= MAX_ID


def _normalize(record_type, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Keep known columns only, with enums as values and datetimes in UTC."""
    values = {}
    for key, value in fields.items():
        if key not in record_type.model_fields:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = ensure_utc(value)
        values[key] = value
    return values


class Storage(ABC):
    """Persistent mapping from ids to users and their owned entities."""

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    # --- users ---
    @abstractmethod
    def create_user(self, fields: Dict[str, Any]) -> UserInDB: ...

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserInDB]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserInDB]: ...

    # --- owned entities ---
    @abstractmethod
    def create(self, kind: EntityKind, fields: Dict[str, Any]): ...

    @abstractmethod
    def get(self, kind: EntityKind, entity_id: int): ...

    @abstractmethod
    def list_by_owner(self, kind: EntityKind, user_id: int) -> List[Any]: ...

    @abstractmethod
    def update(self, kind: EntityKind, entity_id: int, fields: Dict[str, Any]):
        """Merge ``fields`` into the entity; raises ``errors.NotFound``."""

    @abstractmethod
    def delete(self, kind: EntityKind, entity_id: int) -> None:
        """Remove the entity if present. Missing ids are ignored."""

    # --- shared rules ---
    def _prepare_user(self, fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        values = _normalize(UserInDB, fields)
        values.pop("id", None)
        values["created_at"] = now
        return values

    def _prepare_create(self, kind: EntityKind, fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        values = _normalize(RECORD_TYPES[kind], fields)
        for key in _SERVER_FIELDS:
            values.pop(key, None)
        if values.get("user_id") is None:
            raise ValueError(f"{kind.label} requires a user_id")

        if kind is EntityKind.APPLICATION:
            status = values.get("status") or lifecycle.DEFAULT_STATUS
            values["status"] = lifecycle.validate_status(status).value
            if values.get("applied_date") is None:
                values["applied_date"] = now
            values["updated_at"] = now
        elif kind is EntityKind.DOCUMENT:
            # only external bookkeeping may raise the count
            values["usage_count"] = 0
            values["created_at"] = now
            values["updated_at"] = now
        elif kind is EntityKind.INTERVIEW:
            if values.get("completed") is None:
                values["completed"] = False
        return values

    def _prepare_update(self, kind: EntityKind, fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        values = _normalize(RECORD_TYPES[kind], fields)
        for key in _SERVER_FIELDS + ("user_id",):
            values.pop(key, None)

        if kind is EntityKind.APPLICATION and "status" in values:
            values["status"] = lifecycle.validate_status(values["status"]).value
        if kind.has_updated_at:
            values["updated_at"] = now
        return values


class MemoryStorage(Storage):
    """Dict-backed store for tests and throwaway local runs."""

    def __init__(self) -> None:
        self._users: Dict[int, UserInDB] = {}
        self._user_ids = itertools.count(1)
        self._entities: Dict[EntityKind, Dict[int, Any]] = {kind: {} for kind in EntityKind}
        # ids are never handed out twice, even after deletes
        self._ids = {kind: itertools.count(1) for kind in EntityKind}

    def create_user(self, fields: Dict[str, Any]) -> UserInDB:
        values = self._prepare_user(fields, utcnow())
        if self.get_user_by_username(values.get("username")) is not None:
            raise errors.ValidationError("Username already exists")
        user = UserInDB(id=next(self._user_ids), **values)
        self._users[user.id] = user
        return user.model_copy(deep=True)

    def get_user(self, user_id: int) -> Optional[UserInDB]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    def create(self, kind: EntityKind, fields: Dict[str, Any]):
        values = self._prepare_create(kind, fields, utcnow())
        if kind is EntityKind.INTERVIEW:
            self._check_application_exists(values.get("job_application_id"))

        record = RECORD_TYPES[kind](id=next(self._ids[kind]), **values)
        self._entities[kind][record.id] = record
        logger.debug("Entity created", kind=kind.value, entity_id=record.id)
        return record.model_copy(deep=True)

    def get(self, kind: EntityKind, entity_id: int):
        record = self._entities[kind].get(entity_id)
        return record.model_copy(deep=True) if record else None

    def list_by_owner(self, kind: EntityKind, user_id: int) -> List[Any]:
        return [
            record.model_copy(deep=True)
            for record in self._entities[kind].values()
            if record.user_id == user_id
        ]

    def update(self, kind: EntityKind, entity_id: int, fields: Dict[str, Any]):
        existing = self._entities[kind].get(entity_id)
        if existing is None:
            raise errors.NotFound(f"{kind.label} not found")

        values = self._prepare_update(kind, fields, utcnow())
        if kind is EntityKind.INTERVIEW and "job_application_id" in values:
            self._check_application_exists(values["job_application_id"])

        record = RECORD_TYPES[kind].model_validate({**existing.model_dump(), **values})
        self._entities[kind][entity_id] = record
        logger.debug("Entity updated", kind=kind.value, entity_id=entity_id, fields=sorted(values))
        return record.model_copy(deep=True)

    def delete(self, kind: EntityKind, entity_id: int) -> None:
        if self._entities[kind].pop(entity_id, None) is None:
            return
        if kind is EntityKind.APPLICATION:
            interviews = self._entities[EntityKind.INTERVIEW]
            for interview_id in [i.id for i in interviews.values() if i.job_application_id == entity_id]:
                del interviews[interview_id]
        logger.debug("Entity deleted", kind=kind.value, entity_id=entity_id)

    def _check_application_exists(self, application_id: Optional[int]) -> None:
        if application_id not in self._entities[EntityKind.APPLICATION]:
            raise errors.ValidationError(f"Job application {application_id} does not exist")


class SqlStorage(Storage):
    """SQLAlchemy-backed store. Every call runs in its own transaction."""

    _MODELS = {
        EntityKind.APPLICATION: models.JobApplication,
        EntityKind.DOCUMENT: models.Document,
        EntityKind.INTERVIEW: models.Interview,
    }

    def __init__(self, database_url: str, create_tables: bool = True) -> None:
        self.database_url = database_url
        self.create_tables = create_tables
        self._engine = None
        self._sessionmaker: Optional[sessionmaker] = None

    def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = database.make_engine(self.database_url)
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        if self.create_tables:
            database.create_db_and_tables(self._engine)
        logger.info("SQL storage opened", dialect=self._engine.dialect.name)

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("SQL storage closed")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._sessionmaker is None:
            raise RuntimeError("SqlStorage is not open")
        db = self._sessionmaker()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_user(self, fields: Dict[str, Any]) -> UserInDB:
        values = self._prepare_user(fields, utcnow())
        try:
            with self._session() as db:
                return UserInDB.model_validate(crud.create_user(db, values))
        except IntegrityError:
            raise errors.ValidationError("Username already exists")

    def get_user(self, user_id: int) -> Optional[UserInDB]:
        if not _is_storable_id(user_id):
            return None
        with self._session() as db:
            row = crud.get_user_by_id(db, user_id)
            return UserInDB.model_validate(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        with self._session() as db:
            row = crud.get_user_by_username(db, username)
            return UserInDB.model_validate(row) if row else None

    def create(self, kind: EntityKind, fields: Dict[str, Any]):
        values = self._prepare_create(kind, fields, utcnow())
        try:
            with self._session() as db:
                if kind is EntityKind.INTERVIEW:
                    self._check_application_exists(db, values.get("job_application_id"))
                row = crud.create_entity(db, self._MODELS[kind], values)
                record = RECORD_TYPES[kind].model_validate(row)
        except (IntegrityError, DataError) as exc:
            logger.warning("Constraint violation on create", kind=kind.value, error=str(exc.orig))
            raise errors.ValidationError(f"{kind.label} violates a database constraint")
        logger.debug("Entity created", kind=kind.value, entity_id=record.id)
        return record

    def get(self, kind: EntityKind, entity_id: int):
        if not _is_storable_id(entity_id):
            return None
        with self._session() as db:
            row = crud.get_entity(db, self._MODELS[kind], entity_id)
            return RECORD_TYPES[kind].model_validate(row) if row else None

    def list_by_owner(self, kind: EntityKind, user_id: int) -> List[Any]:
        with self._session() as db:
            rows = crud.get_entities_for_user(db, self._MODELS[kind], user_id)
            return [RECORD_TYPES[kind].model_validate(row) for row in rows]

    def update(self, kind: EntityKind, entity_id: int, fields: Dict[str, Any]):
        if not _is_storable_id(entity_id):
            raise errors.NotFound(f"{kind.label} not found")
        values = self._prepare_update(kind, fields, utcnow())
        try:
            with self._session() as db:
                if kind is EntityKind.INTERVIEW and "job_application_id" in values:
                    self._check_application_exists(db, values["job_application_id"])
                row = crud.update_entity(db, self._MODELS[kind], entity_id, values)
                if row is None:
                    raise errors.NotFound(f"{kind.label} not found")
                record = RECORD_TYPES[kind].model_validate(row)
        except (IntegrityError, DataError) as exc:
            logger.warning("Constraint violation on update", kind=kind.value, error=str(exc.orig))
            raise errors.ValidationError(f"{kind.label} violates a database constraint")
        logger.debug("Entity updated", kind=kind.value, entity_id=entity_id, fields=sorted(values))
        return record

    def delete(self, kind: EntityKind, entity_id: int) -> None:
        if not _is_storable_id(entity_id):
            return
        with self._session() as db:
            deleted = crud.delete_entity(db, self._MODELS[kind], entity_id)
        if deleted:
            logger.debug("Entity deleted", kind=kind.value, entity_id=entity_id)

    @staticmethod
    def _check_application_exists(db: Session, application_id: Optional[int]) -> None:
        if (
            not _is_storable_id(application_id)
            or crud.get_entity(db, models.JobApplication, application_id) is None
        ):
            raise errors.ValidationError(f"Job application {application_id} does not exist")


def build_store(settings: Settings) -> Storage:
    """Pick the storage backend named in settings."""
    if settings.storage_backend == "memory":
        return MemoryStorage()
    return SqlStorage(database.build_database_url(settings), create_tables=settings.create_tables)
