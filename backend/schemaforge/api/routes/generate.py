import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from schemaforge.api.deps import GenerationClientDep
from schemaforge.models import GenerateError, GenerateRequest, GenerateResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/",
    response_model=GenerateResponse,
    responses={
        429: {"model": GenerateError},
        500: {"model": GenerateError},
        502: {"model": GenerateError},
    },
)
async def generate_schema(request: GenerateRequest, client: GenerationClientDep) -> JSONResponse:
    """
    Turn a natural-language description into DBML.
    """
    result = await client.generate(request.prompt)
    if result.ok:
        return JSONResponse(status_code=200, content={"dbml": result.dbml})

    headers = None
    if result.rate_limited and result.retry_after is not None:
        headers = {"Retry-After": str(max(1, round(result.retry_after)))}
    status_code = result.status_code if result.status_code >= 400 else 500
    return JSONResponse(status_code=status_code, content={"error": result.message}, headers=headers)
