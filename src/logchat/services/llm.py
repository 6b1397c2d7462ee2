"""LLM service."""
from openai import OpenAI
from logchat.core.config import LLMConfig
from logchat.core.errors import UpstreamError
from logchat.core.logging import logger


class LLMService:
    """Chat completions against an OpenAI-compatible endpoint."""

    def __init__(self, config: LLMConfig):
        """Remember the endpoint; the client is created on first use."""
        self.config = config
        self._client = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                base_url=self.config.base_url,
                api_key=self.config.api_key or "not-needed",
            )
            logger.info(f"LLM client initialized: {self.config.base_url}")
        return self._client

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        """Single-turn completion. Failures are not retried."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        try:
            resp = self.client.chat.completions.create(
                model=self.config.model_name,
                messages=messages,
                temperature=temperature,
            )
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise UpstreamError(f"LLM service unavailable: {str(e)}") from e

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    def health_check(self) -> str:
        """Check LLM service health."""
        try:
            self.client.models.list()
            return "healthy"
        except Exception as e:
            logger.error(f"LLM health check failed: {e}")
            return f"unhealthy: {str(e)}"
