from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from schemaforge.api.deps import StoreDep
from schemaforge.core.errors import StorageUnavailableError
from schemaforge.editor.diagram import Diagram, derive_diagram, nodes_from_layout
from schemaforge.editor.sanitize import export_filename
from schemaforge.editor.store import SchemaStore
from schemaforge.models import (
    Message,
    SchemaRecord,
    SchemaRecordCreate,
    SchemaRecordsPublic,
    SchemaRecordUpdate,
)

router = APIRouter()


def _get_or_404(store: SchemaStore, id: str) -> SchemaRecord:
    record = store.get_schema(id)
    if not record:
        raise HTTPException(status_code=404, detail="Schema not found")
    return record


def _save(store: SchemaStore, record: SchemaRecord) -> SchemaRecord:
    try:
        return store.save_schema(record)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/", response_model=SchemaRecordsPublic)
def read_schemas(store: StoreDep) -> Any:
    records = store.get_schemas()
    return SchemaRecordsPublic(data=records, count=len(records))


@router.post("/", response_model=SchemaRecord)
def create_schema(*, store: StoreDep, schema_in: SchemaRecordCreate) -> Any:
    record = SchemaRecord.model_validate(schema_in.model_dump())
    return _save(store, record)


@router.get("/{id}", response_model=SchemaRecord)
def read_schema(id: str, store: StoreDep) -> Any:
    return _get_or_404(store, id)


@router.put("/{id}", response_model=SchemaRecord)
def update_schema(*, id: str, store: StoreDep, schema_in: SchemaRecordUpdate) -> Any:
    record = _get_or_404(store, id)
    update_data = schema_in.model_dump(exclude_unset=True, exclude_none=True)
    return _save(store, SchemaRecord.model_validate(record.model_dump() | update_data))


@router.delete("/{id}", response_model=Message)
def delete_schema(id: str, store: StoreDep) -> Any:
    _get_or_404(store, id)
    try:
        store.delete_schema(id)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Message(message="Schema deleted successfully")


@router.get("/{id}/diagram", response_model=Diagram)
def read_schema_diagram(id: str, store: StoreDep) -> Any:
    record = _get_or_404(store, id)
    return derive_diagram(record.dbml, nodes_from_layout(record.layout))


@router.get("/{id}/export", response_class=PlainTextResponse)
def export_schema(id: str, store: StoreDep) -> PlainTextResponse:
    record = _get_or_404(store, id)
    filename = export_filename(record.name)
    return PlainTextResponse(
        record.dbml,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
