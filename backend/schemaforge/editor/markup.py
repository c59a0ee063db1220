"""
Markup Parser boundary.

Wraps pydbml and converts its object model into plain pydantic models so the
diagram builder never touches parser internals. Tests can hand the builder
any callable with the same signature as `parse_markup`.
"""
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field
from pydbml import PyDBML

from schemaforge.core.errors import MarkupParseError

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_NAME = "public"


class ParsedField(BaseModel):
    name: str
    type_name: str
    pk: bool = False


class ParsedTable(BaseModel):
    name: str
    fields: list[ParsedField] = Field(default_factory=list)


class RefEndpoint(BaseModel):
    table_name: str
    field_names: list[str] = Field(default_factory=list)


class ParsedRef(BaseModel):
    name: str | None = None
    # Declaration order: endpoints[0] is the left-hand side of the Ref.
    endpoints: list[RefEndpoint] = Field(default_factory=list)


class ParsedSchema(BaseModel):
    name: str = DEFAULT_SCHEMA_NAME
    tables: list[ParsedTable] = Field(default_factory=list)
    refs: list[ParsedRef] = Field(default_factory=list)


class ParsedDatabase(BaseModel):
    schemas: list[ParsedSchema] = Field(default_factory=list)


MarkupParser = Callable[[str], ParsedDatabase]


def _type_name(column: Any) -> str:
    # Enum-typed columns carry a pydbml Enum object instead of a string.
    column_type = getattr(column, "type", "")
    return str(getattr(column_type, "name", column_type))


def _composite_pk_columns(table: Any) -> set[str]:
    names: set[str] = set()
    for index in getattr(table, "indexes", None) or []:
        if not getattr(index, "pk", False):
            continue
        for subject in getattr(index, "subjects", None) or []:
            # Expressions have no name and cannot carry a column flag
            name = subject if isinstance(subject, str) else getattr(subject, "name", None)
            if name:
                names.add(name)
    return names


def _schema_of(table: Any) -> str:
    return getattr(table, "schema", None) or DEFAULT_SCHEMA_NAME


def _endpoint(columns: list[Any]) -> RefEndpoint | None:
    if not columns:
        return None
    table = getattr(columns[0], "table", None)
    if table is None:
        return None
    return RefEndpoint(
        table_name=table.name,
        field_names=[column.name for column in columns],
    )


def _to_parsed_database(database: Any) -> ParsedDatabase:
    schemas: dict[str, ParsedSchema] = {}

    for table in database.tables:
        pk_columns = _composite_pk_columns(table)
        parsed_table = ParsedTable(
            name=table.name,
            fields=[
                ParsedField(
                    name=column.name,
                    type_name=_type_name(column),
                    pk=bool(getattr(column, "pk", False)) or column.name in pk_columns,
                )
                for column in table.columns
            ],
        )
        schema_name = _schema_of(table)
        schemas.setdefault(schema_name, ParsedSchema(name=schema_name)).tables.append(parsed_table)

    for ref in database.refs:
        endpoints = [_endpoint(list(ref.col1)), _endpoint(list(ref.col2))]
        if any(endpoint is None for endpoint in endpoints):
            logger.debug("Skipping reference without resolvable endpoints: %r", ref)
            continue
        schema_name = _schema_of(ref.col1[0].table)
        schemas.setdefault(schema_name, ParsedSchema(name=schema_name)).refs.append(
            ParsedRef(name=getattr(ref, "name", None) or None, endpoints=endpoints)
        )

    return ParsedDatabase(schemas=list(schemas.values()))


def parse_markup(text: str) -> ParsedDatabase:
    """Parse DBML text. Raises MarkupParseError for anything pydbml rejects."""
    try:
        database = PyDBML(text)
    except Exception as exc:
        # pydbml surfaces syntax errors from pyparsing and semantic errors from
        # its own exception classes; both mean the markup is unusable.
        raise MarkupParseError(f"Invalid DBML: {exc}") from exc
    return _to_parsed_database(database)
