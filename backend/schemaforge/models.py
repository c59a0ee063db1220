import time
import uuid

from sqlalchemy import Text
from sqlmodel import Field, SQLModel

from schemaforge.editor.diagram import Position, TableNode

DEFAULT_SCHEMA_NAME = "Untitled Schema"
GENERATED_SCHEMA_NAME = "New AI Schema"
SAVED_SCHEMA_FALLBACK_NAME = "Untitled"


def get_timestamp_ms() -> int:
    return int(time.time() * 1000)


def new_schema_id() -> str:
    return uuid.uuid4().hex


# Key-value medium: the whole schema collection lives under a single key
class KeyValueEntry(SQLModel, table=True):
    key: str = Field(primary_key=True, max_length=255)
    value: str = Field(sa_type=Text)  # type: ignore


# Shared properties
class SchemaRecordBase(SQLModel):
    name: str = Field(default=DEFAULT_SCHEMA_NAME, max_length=255)
    dbml: str = ""
    layout: dict[str, Position] | None = None


# Properties to receive via API on creation
class SchemaRecordCreate(SchemaRecordBase):
    pass


# Properties to receive via API on update, all are optional
class SchemaRecordUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=255)
    dbml: str | None = None
    layout: dict[str, Position] | None = None


# Stored record; timestamps are epoch milliseconds
class SchemaRecord(SchemaRecordBase):
    id: str = Field(default_factory=new_schema_id)
    created_at: int = Field(default_factory=get_timestamp_ms)
    updated_at: int = Field(default_factory=get_timestamp_ms)


class SchemaRecordsPublic(SQLModel):
    data: list[SchemaRecord]
    count: int


# Generic message
class Message(SQLModel):
    message: str


class DiagramRequest(SQLModel):
    dbml: str = ""
    previous_nodes: list[TableNode] = Field(default_factory=list)


class GenerateRequest(SQLModel):
    prompt: str = Field(min_length=1, max_length=5000)


class GenerateResponse(SQLModel):
    dbml: str


class GenerateError(SQLModel):
    error: str
