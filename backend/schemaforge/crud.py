from sqlmodel import Session

from schemaforge.models import KeyValueEntry


def get_value(*, session: Session, key: str) -> str | None:
    entry = session.get(KeyValueEntry, key)
    return entry.value if entry else None


def set_value(*, session: Session, key: str, value: str) -> KeyValueEntry:
    entry = session.get(KeyValueEntry, key)
    if entry:
        entry.value = value
    else:
        entry = KeyValueEntry(key=key, value=value)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry

