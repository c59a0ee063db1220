import pytest

from schemaforge.editor.markup import ParsedDatabase, ParsedField, ParsedRef, ParsedSchema, ParsedTable, RefEndpoint
from schemaforge.editor.store import MemoryKeyValueBackend, SchemaStore


class RecordingBackend(MemoryKeyValueBackend):
    def __init__(self):
        super().__init__()
        self.writes: list[str] = []

    def set_item(self, key: str, value: str) -> None:
        self.writes.append(value)
        super().set_item(key, value)


class ManualTask:
    def __init__(self, due: float, callback):
        self.due = due
        self.callback = callback
        self.fired = False
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Deterministic stand-in for the event loop timer: time only moves on advance()."""

    def __init__(self):
        self.now = 0.0
        self.tasks: list[ManualTask] = []

    def call_later(self, delay, callback):
        task = ManualTask(self.now + delay, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled() and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self.now = task.due
            task.fired = True
            task.callback()
        self.now = target


def make_parser(tables, refs=()):
    """Build a parser stub that returns a fixed single-schema database."""

    def parser(text: str) -> ParsedDatabase:
        return ParsedDatabase(
            schemas=[ParsedSchema(tables=list(tables), refs=list(refs))]
        )

    return parser


def table(name: str, *fields: str, pk: str | None = "id") -> ParsedTable:
    return ParsedTable(
        name=name,
        fields=[ParsedField(name=f, type_name="integer", pk=(f == pk)) for f in fields],
    )


def ref(first: str, second: str, name: str | None = None) -> ParsedRef:
    endpoints = []
    for endpoint in (first, second):
        table_name, field_name = endpoint.split(".")
        endpoints.append(RefEndpoint(table_name=table_name, field_names=[field_name]))
    return ParsedRef(name=name, endpoints=endpoints)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def store(backend) -> SchemaStore:
    return SchemaStore(backend, key="test_schemas")


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()
