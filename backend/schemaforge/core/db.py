import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from schemaforge.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_uri: str | None = None) -> Engine | None:
    uri = settings.STORAGE_DATABASE_URI if database_uri is None else database_uri
    if not uri:
        logger.warning("No storage database configured; schemas will not be persisted.")
        return None
    connect_args = {"check_same_thread": False} if uri.startswith("sqlite") else {}
    return create_engine(uri, connect_args=connect_args)


def init_db(engine: Engine | None) -> None:
    if engine is None:
        return
    # Registers KeyValueEntry on SQLModel.metadata
    import schemaforge.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


engine = build_engine()
