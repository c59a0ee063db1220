"""
Schema Store.

Durable key-value persistence of schema records. The whole collection is
serialized as one JSON array under a single key: every read loads the full
collection and every write replaces it. Concurrent writers are last-writer-wins.
"""
import json
import logging
from typing import Protocol

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from schemaforge import crud
from schemaforge.core.config import settings
from schemaforge.core.errors import StorageUnavailableError
from schemaforge.models import SchemaRecord, get_timestamp_ms

logger = logging.getLogger(__name__)

DEMO_SCHEMA_ID = "demo"
DEMO_SCHEMA_NAME = "Blog Demo"
DEMO_SCHEMA_DBML = """Table users {
  id integer [pk]
  username varchar
  email varchar
  created_at timestamp
}

Table posts {
  id integer [pk]
  title varchar
  body text
  user_id integer
  created_at timestamp
}

Ref: users.id < posts.user_id
"""


class KeyValueBackend(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryKeyValueBackend:
    def __init__(self, initial: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class SqlKeyValueBackend:
    def __init__(self, engine: Engine):
        self.engine = engine

    def get_item(self, key: str) -> str | None:
        with Session(self.engine) as session:
            return crud.get_value(session=session, key=key)

    def set_item(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            crud.set_value(session=session, key=key, value=value)


class SchemaStore:
    def __init__(self, backend: KeyValueBackend | None, key: str | None = None):
        self.backend = backend
        self.key = key or settings.STORAGE_KEY

    @property
    def available(self) -> bool:
        return self.backend is not None

    def get_schemas(self) -> list[SchemaRecord]:
        if self.backend is None:
            return []
        raw = self.backend.get_item(self.key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Stored schema collection under %s is not valid JSON: %s", self.key, exc)
            return []
        if not isinstance(items, list):
            logger.error("Stored schema collection under %s is not a list", self.key)
            return []

        records: list[SchemaRecord] = []
        for item in items:
            try:
                records.append(SchemaRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping unreadable schema record: %s", exc)
        return records

    def get_schema(self, schema_id: str) -> SchemaRecord | None:
        for record in self.get_schemas():
            if record.id == schema_id:
                return record
        return None

    def save_schema(self, record: SchemaRecord) -> SchemaRecord:
        """Insert or update by id. createdAt is kept from the stored copy; updatedAt is refreshed."""
        self._require_backend()
        records = self.get_schemas()
        now = get_timestamp_ms()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                stored = record.model_copy(
                    update={"created_at": existing.created_at, "updated_at": now}
                )
                records[index] = stored
                break
        else:
            stored = record.model_copy(update={"created_at": now, "updated_at": now})
            records.append(stored)
        self._write(records)
        return stored

    def delete_schema(self, schema_id: str) -> bool:
        self._require_backend()
        records = self.get_schemas()
        remaining = [record for record in records if record.id != schema_id]
        if len(remaining) == len(records):
            return False
        self._write(remaining)
        return True

    def seed_demo_if_empty(self) -> SchemaRecord | None:
        if self.backend is None or self.get_schemas():
            return None
        logger.info("Seeding demo schema %s", DEMO_SCHEMA_ID)
        return self.save_schema(
            SchemaRecord(id=DEMO_SCHEMA_ID, name=DEMO_SCHEMA_NAME, dbml=DEMO_SCHEMA_DBML)
        )

    def _require_backend(self) -> None:
        if self.backend is None:
            raise StorageUnavailableError("Schema storage is not available")

    def _write(self, records: list[SchemaRecord]) -> None:
        payload = json.dumps([record.model_dump(mode="json") for record in records])
        self.backend.set_item(self.key, payload)  # type: ignore[union-attr]


def build_store(engine: Engine | None) -> SchemaStore:
    return SchemaStore(SqlKeyValueBackend(engine) if engine is not None else None)
