import logging

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from schemaforge.core.config import settings
from schemaforge.core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class LLMClient:
    """Plain-text client for any endpoint that speaks the OpenAI chat completions API."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT

        resolved_api_key = api_key or settings.generation_api_key
        if not resolved_api_key:
            raise ConfigurationError("API key not configured")

        self.client = AsyncOpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=resolved_api_key,
        )

    async def generate_text(
        self, system_prompt: str, user_prompt: str, *, temperature: float | None = None
    ) -> str:
        """
        Issue a single chat completion and return the stripped text.
        Provider failures are raised as UpstreamError carrying the provider's status.
        """
        logger.info("Issuing text request to model %s...", self.model_name)
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.GENERATION_TEMPERATURE if temperature is None else temperature,
            )
        except APIStatusError as e:
            logger.error("Model %s returned HTTP %s: %s", self.model_name, e.status_code, e.message)
            raise UpstreamError(f"Gemini API Error: {e.message}", status_code=e.status_code) from e
        except APIConnectionError as e:
            logger.error("Could not reach model provider for %s: %s", self.model_name, e)
            raise UpstreamError("Connection error. Check your API key and network.") from e

        if not getattr(response, "choices", None):
            logger.error("Received 0 choices from %s: %s", self.model_name, response)
            raise UpstreamError("Failed to generate schema: Empty response from AI", status_code=500)

        text_response = (response.choices[0].message.content or "").strip()
        if not text_response:
            raise UpstreamError("Failed to generate schema: Empty response from AI", status_code=500)

        logger.info("Successfully received text response from %s.", self.model_name)
        return text_response
