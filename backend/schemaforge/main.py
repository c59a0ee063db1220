import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schemaforge.api.deps import get_store
from schemaforge.api.main import api_router
from schemaforge.core.config import settings
from schemaforge.core.db import engine, init_db

# Configure root logging (stdout handler) with level from settings
level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(engine)
    if settings.SEED_DEMO_SCHEMA:
        get_store().seed_demo_if_empty()
    if not settings.generation_api_key:
        logger.warning("No LLM_API_KEY or GEMINI_API_KEY set; schema generation is disabled.")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)
