from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from schemaforge.core.db import engine
from schemaforge.editor.store import SchemaStore, build_store
from schemaforge.generation.client import GenerationClient


def get_store() -> SchemaStore:
    return build_store(engine)


# One client per process so the rate limiter sees every request
@lru_cache
def get_generation_client() -> GenerationClient:
    return GenerationClient()


StoreDep = Annotated[SchemaStore, Depends(get_store)]
GenerationClientDep = Annotated[GenerationClient, Depends(get_generation_client)]
