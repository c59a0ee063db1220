"""
Generation boundary.

`GenerationClient.generate` is the one call the editor makes to turn a
natural-language description into DBML. It never raises: every failure comes
back as a `GenerationResult` with an error message and a status code.
"""
import logging

from pydantic import BaseModel

from schemaforge.core.config import settings
from schemaforge.core.errors import ConfigurationError, RateLimitError, UpstreamError
from schemaforge.generation.llm_client import LLMClient
from schemaforge.generation.prompts import SCHEMA_ARCHITECT_SYSTEM_PROMPT, build_user_prompt
from schemaforge.generation.rate_limit import MinIntervalRateLimiter

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate schema"


class GenerationResult(BaseModel):
    dbml: str | None = None
    error: str | None = None
    status_code: int = 200
    rate_limited: bool = False
    retry_after: float | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and bool(self.dbml)

    @property
    def message(self) -> str:
        return self.error or GENERIC_FAILURE_MESSAGE


class GenerationClient:
    def __init__(
        self,
        llm_client: LLMClient | None = None,
        limiter: MinIntervalRateLimiter | None = None,
    ):
        self._llm_client = llm_client
        self.limiter = limiter or MinIntervalRateLimiter(settings.GENERATION_MIN_INTERVAL_SECONDS)
        self._configuration_reported = False

    def _get_llm_client(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = LLMClient()
        return self._llm_client

    async def generate(self, prompt: str) -> GenerationResult:
        try:
            self.limiter.acquire()
            llm = self._get_llm_client()
            text = await llm.generate_text(
                SCHEMA_ARCHITECT_SYSTEM_PROMPT, build_user_prompt(prompt)
            )
        except RateLimitError as e:
            return GenerationResult(
                error=e.message, status_code=e.status_code, rate_limited=True, retry_after=e.retry_after
            )
        except ConfigurationError as e:
            if not self._configuration_reported:
                logger.error("Schema generation disabled: %s", e.message)
                self._configuration_reported = True
            return GenerationResult(error=e.message, status_code=e.status_code)
        except UpstreamError as e:
            logger.warning("Schema generation failed (%s): %s", e.status_code, e.message)
            return GenerationResult(error=e.message, status_code=e.status_code)
        except Exception as e:
            logger.exception("Unexpected error during schema generation")
            return GenerationResult(error=str(e) or GENERIC_FAILURE_MESSAGE, status_code=500)

        logger.info("Generated %s characters of DBML", len(text))
        return GenerationResult(dbml=text)
