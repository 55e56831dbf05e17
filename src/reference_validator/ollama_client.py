"""Shared Ollama interaction helper.

Wraps ollama.AsyncClient.chat() with structured output support, configurable
model, and graceful error handling when Ollama is not available.
"""

import logging
from typing import TypeVar

import ollama
from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_MODEL = "llama3.1"


class OllamaClient:
    def __init__(self, model: str = DEFAULT_MODEL, temperature: float = 0.0, host: str | None = None):
        self.model = model
        self.temperature = temperature
        self.host = host
        self._client: ollama.AsyncClient | None = None
        self._available: bool | None = None

    def _get_client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    async def check_connection(self) -> bool:
        """Check if Ollama is running and the model is available.

        The answer is cached so a batch checks the server only once.
        """
        if self._available is not None:
            return self._available
        try:
            models = await self._get_client().list()
            available = [m.model for m in models.models]
            self._available = any(self.model in name for name in available)
            if not self._available:
                logger.error(
                    "Model '%s' not found. Available models: %s",
                    self.model,
                    available,
                )
        except Exception as e:
            logger.error("Cannot connect to Ollama: %s", e)
            self._available = False
        return self._available

    async def _chat(self, prompt: str, system_prompt: str, **kwargs) -> str:
        if not await self.check_connection():
            raise ConnectionError(
                f"Ollama is not running or model '{self.model}' is not available. "
                "Start Ollama with 'ollama serve' and pull a model with "
                f"'ollama pull {self.model}'."
            )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = await self._get_client().chat(
            model=self.model,
            messages=messages,
            options={"temperature": self.temperature},
            **kwargs,
        )
        return response.message.content or ""

    async def chat_structured(
        self,
        prompt: str,
        response_model: type[T],
        system_prompt: str = "",
    ) -> T:
        """Send a prompt to Ollama and parse the response into a Pydantic model.

        Uses Ollama's format= parameter for structured JSON output. A reply
        that does not fit the schema raises pydantic.ValidationError.
        """
        raw_json = await self._chat(prompt, system_prompt, format=response_model.model_json_schema())
        return response_model.model_validate_json(raw_json)

    async def chat_raw(self, prompt: str, system_prompt: str = "") -> str:
        """Send a prompt and return the raw text response."""
        return await self._chat(prompt, system_prompt)
