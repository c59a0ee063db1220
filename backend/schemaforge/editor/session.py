"""
Editor Session.

Owns the in-memory DBML buffer, the current record, the derived diagram and a
debounced autosave. Every command returns a `SessionState` snapshot so the
session can be driven and inspected without any rendering surface.

Autosave states:

    Idle --edit differing from stored copy--> PendingSave(record_id, task)
    PendingSave --further edit--> PendingSave (task restarted)
    PendingSave --quiet period elapsed--> write record_id --> Idle
    PendingSave --create/select/delete/save/close--> Idle (task canceled, edits dropped)

A pending save is bound to the record id it was armed for, so a timer can
never write one record's buffer into another record's slot. With no event
loop to run the timer on, an edit is written immediately instead.

Each command clears the error left by the previous one.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from schemaforge.core.config import settings
from schemaforge.core.errors import SchedulerUnavailableError, StorageUnavailableError
from schemaforge.editor.diagram import Diagram, Position, derive_diagram, nodes_from_layout
from schemaforge.editor.markup import MarkupParser, parse_markup
from schemaforge.editor.sanitize import ExportedFile, build_export, strip_markdown_fences
from schemaforge.editor.scheduler import AsyncioScheduler, ScheduledTask, Scheduler
from schemaforge.editor.store import SchemaStore
from schemaforge.generation.client import GenerationClient
from schemaforge.models import (
    DEFAULT_SCHEMA_NAME,
    GENERATED_SCHEMA_NAME,
    SAVED_SCHEMA_FALLBACK_NAME,
    SchemaRecord,
    get_timestamp_ms,
)

logger = logging.getLogger(__name__)

GENERATION_IN_PROGRESS_MESSAGE = "A schema is already being generated. Please wait."
RATE_LIMITED_HINT = "Try again in a moment."
NOTHING_TO_SAVE_MESSAGE = "Nothing to save: the DBML editor is empty."
GENERATION_UNAVAILABLE_MESSAGE = "API key not configured"


class ViewMode(str, Enum):
    VISUAL = "visual"
    CODE = "code"


class SaveStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: list[SchemaRecord] = Field(default_factory=list)
    current_id: str | None = None
    name: str = ""
    markup_text: str = ""
    diagram: Diagram = Field(default_factory=Diagram)
    view_mode: ViewMode = ViewMode.VISUAL
    save_status: SaveStatus = SaveStatus.IDLE
    is_generating: bool = False
    error: str | None = None


@dataclass
class PendingSave:
    record_id: str
    task: ScheduledTask


class EditorSession:
    def __init__(
        self,
        store: SchemaStore,
        generation_client: GenerationClient | None = None,
        *,
        scheduler: Scheduler | None = None,
        debounce_seconds: float | None = None,
        parser: MarkupParser = parse_markup,
    ):
        self.store = store
        self.generation_client = generation_client
        self.scheduler = scheduler or AsyncioScheduler()
        self.debounce_seconds = (
            settings.AUTOSAVE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.parser = parser

        self._records: list[SchemaRecord] = []
        # Last persisted copy of the current record
        self._current: SchemaRecord | None = None
        self._name = ""
        self._markup_text = ""
        self._diagram = Diagram()
        self._layout_dirty = False
        self._revision = 0
        self._pending: PendingSave | None = None
        self._view_mode = ViewMode.VISUAL
        self._generating = False
        self._error: str | None = None

    @property
    def state(self) -> SessionState:
        return SessionState(
            records=list(self._records),
            current_id=self._current.id if self._current else None,
            name=self._name,
            markup_text=self._markup_text,
            diagram=self._diagram,
            view_mode=self._view_mode,
            save_status=SaveStatus.PENDING if self._pending else SaveStatus.IDLE,
            is_generating=self._generating,
            error=self._error,
        )

    def load_initial(self, *, seed_demo: bool = False) -> SessionState:
        """Load the record list and bind the most recently updated record, if any."""
        self._error = None
        if seed_demo:
            self.store.seed_demo_if_empty()
        self._records = self.store.get_schemas()
        latest: SchemaRecord | None = None
        for record in self._records:
            if latest is None or record.updated_at >= latest.updated_at:
                latest = record
        self._bind(latest)
        return self.state

    def set_markup_text(self, text: str) -> SessionState:
        self._error = None
        self._markup_text = text
        self._revision += 1
        self._diagram = derive_diagram(text, self._diagram.nodes, parser=self.parser)
        self._arm_autosave()
        return self.state

    async def set_markup_text_async(self, text: str) -> SessionState:
        """
        Like set_markup_text, but derives the diagram off the event loop. If the
        text changes again before derivation finishes, the stale result is dropped.
        """
        self._error = None
        self._markup_text = text
        self._revision += 1
        revision = self._revision
        self._arm_autosave()

        diagram = await asyncio.to_thread(
            derive_diagram, text, list(self._diagram.nodes), parser=self.parser
        )
        if revision == self._revision:
            self._diagram = diagram
        else:
            logger.debug("Discarding stale diagram for revision %s", revision)
        return self.state

    def set_schema_name(self, name: str) -> SessionState:
        self._error = None
        self._name = name
        self._arm_autosave()
        return self.state

    def set_view_mode(self, view_mode: ViewMode | str) -> SessionState:
        self._view_mode = ViewMode(view_mode)
        return self.state

    def move_node(self, table_name: str, x: float, y: float) -> SessionState:
        """Record a dragged node position; the layout is persisted with the next autosave."""
        moved = False
        nodes = []
        for node in self._diagram.nodes:
            if node.id == table_name:
                node = node.model_copy(update={"position": Position(x=x, y=y)})
                moved = True
            nodes.append(node)
        if not moved:
            return self.state
        self._error = None
        self._diagram = self._diagram.model_copy(update={"nodes": nodes})
        self._layout_dirty = True
        self._arm_autosave()
        return self.state

    def create_new(self) -> SessionState:
        self._error = None
        self._cancel_pending("new schema created")
        record = SchemaRecord(name=DEFAULT_SCHEMA_NAME, dbml="")
        self._bind(self._persist(record) or record)
        return self.state

    def select_existing(self, schema_id: str) -> SessionState:
        record = self.store.get_schema(schema_id)
        if record is None:
            record = next((r for r in self._records if r.id == schema_id), None)
        if record is None:
            self._error = f"Schema {schema_id} not found"
            return self.state
        self._error = None
        self._cancel_pending(f"switched to {schema_id}")
        self._bind(record)
        return self.state

    def delete(self, schema_id: str) -> SessionState:
        self._error = None
        was_current = self._current is not None and self._current.id == schema_id
        if was_current:
            self._cancel_pending(f"deleted {schema_id}")
        try:
            self.store.delete_schema(schema_id)
        except StorageUnavailableError as e:
            self._error = e.message
            self._records = [r for r in self._records if r.id != schema_id]
        else:
            self._records = self.store.get_schemas()
        if was_current:
            self._bind(self._records[0] if self._records else None)
        return self.state

    def save(self, name: str | None = None) -> SessionState:
        """Persist the buffer now under `name`, creating a record when none is current."""
        if not self._markup_text:
            self._error = NOTHING_TO_SAVE_MESSAGE
            return self.state
        self._error = None
        self._cancel_pending("explicit save")
        self._name = (name or "").strip() or SAVED_SCHEMA_FALLBACK_NAME
        base = self._current or SchemaRecord()
        record = base.model_copy(
            update={
                "name": self._name,
                "dbml": self._markup_text,
                "layout": self._diagram.positions() or None,
                "updated_at": get_timestamp_ms(),
            }
        )
        saved = self._persist(record)
        self._current = saved or record
        self._layout_dirty = False
        return self.state

    def export(self) -> ExportedFile | None:
        return build_export(self._name, self._markup_text)

    async def request_generation(self, prompt: str) -> SessionState:
        if not prompt or not prompt.strip():
            return self.state
        if self._generating:
            self._error = GENERATION_IN_PROGRESS_MESSAGE
            return self.state
        if self.generation_client is None:
            self._error = GENERATION_UNAVAILABLE_MESSAGE
            return self.state

        self._generating = True
        self._error = None
        try:
            result = await self.generation_client.generate(prompt)
        finally:
            self._generating = False

        if not result.ok:
            message = result.message
            if result.rate_limited:
                message = f"{message} {RATE_LIMITED_HINT}"
            self._error = message
            return self.state

        dbml = strip_markdown_fences(result.dbml)
        if not dbml:
            self._error = "Failed to generate schema: Empty response from AI"
            return self.state

        if self._current is not None and not self._markup_text.strip():
            self.set_markup_text(dbml)
        else:
            self._cancel_pending("generated schema stored as new record")
            record = SchemaRecord(name=GENERATED_SCHEMA_NAME, dbml=dbml)
            self._bind(self._persist(record) or record)
        self._view_mode = ViewMode.VISUAL
        return self.state

    def close(self) -> None:
        self._cancel_pending("session closed")

    # Internals

    def _bind(self, record: SchemaRecord | None) -> None:
        self._current = record
        self._name = record.name if record else ""
        self._markup_text = record.dbml if record else ""
        self._layout_dirty = False
        self._revision += 1
        previous = nodes_from_layout(record.layout) if record else []
        self._diagram = derive_diagram(self._markup_text, previous, parser=self.parser)

    def _has_unsaved_changes(self) -> bool:
        if self._current is None:
            return False
        return (
            self._name != self._current.name
            or self._markup_text != self._current.dbml
            or self._layout_dirty
        )

    def _arm_autosave(self) -> None:
        if self._current is None:
            return
        if not self._has_unsaved_changes():
            self._cancel_pending("buffer matches stored copy")
            return
        if self._pending is not None:
            self._pending.task.cancel()
        self._pending = None
        record_id = self._current.id
        try:
            task = self.scheduler.call_later(
                self.debounce_seconds, lambda: self._flush_autosave(record_id)
            )
        except SchedulerUnavailableError as e:
            logger.warning("Autosave timer unavailable (%s); saving %s now", e.message, record_id)
            self._write_current(record_id)
            return
        self._pending = PendingSave(record_id=record_id, task=task)

    def _cancel_pending(self, reason: str) -> None:
        if self._pending is None:
            return
        logger.info("Canceled pending autosave for %s (%s)", self._pending.record_id, reason)
        self._pending.task.cancel()
        self._pending = None

    def _flush_autosave(self, record_id: str) -> None:
        pending = self._pending
        if pending is None or pending.record_id != record_id:
            return
        self._pending = None
        if self._current is None or self._current.id != record_id:
            logger.warning("Dropping autosave for %s: no longer the current record", record_id)
            return
        self._write_current(record_id)

    def _write_current(self, record_id: str) -> None:
        record = self._current.model_copy(
            update={
                "name": self._name,
                "dbml": self._markup_text,
                "layout": self._diagram.positions() or None,
                "updated_at": get_timestamp_ms(),
            }
        )
        saved = self._persist(record)
        if saved is not None:
            logger.info("Autosaved schema %s", record_id)
            self._current = saved
            self._layout_dirty = False

    def _persist(self, record: SchemaRecord) -> SchemaRecord | None:
        try:
            saved = self.store.save_schema(record)
        except StorageUnavailableError as e:
            logger.warning("Could not persist schema %s: %s", record.id, e.message)
            self._error = e.message
            return None
        self._records = self.store.get_schemas()
        return saved
