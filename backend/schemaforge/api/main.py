from fastapi import APIRouter

from schemaforge.api.routes import diagram, generate, schemas, utils

api_router = APIRouter()
api_router.include_router(utils.router, tags=["utils"])
api_router.include_router(schemas.router, prefix="/schemas", tags=["schemas"])
api_router.include_router(diagram.router, prefix="/diagram", tags=["diagram"])
api_router.include_router(generate.router, prefix="/generate", tags=["generate"])
