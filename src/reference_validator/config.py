"""Validation settings, passed explicitly to every component that needs them."""

import os
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field

USER_AGENT = "reference-validator/0.1.0"
ENV_PREFIX = "REFVAL_"


class ValidationMode(str, Enum):
    API_ONLY = "api-only"
    AGENT_BASED = "agent-based"


class ValidationSettings(BaseModel):
    mode: ValidationMode = ValidationMode.API_ONLY
    enable_crossref: bool = True
    enable_semantic_scholar: bool = True
    enable_openalex: bool = True
    enable_arxiv: bool = True
    rate_limit_delay: float = Field(0.5, ge=0.0, description="Seconds between sequential API calls")
    http_timeout: float = Field(30.0, gt=0.0)
    mailto: Optional[str] = Field(None, description="Contact address for CrossRef/OpenAlex polite pools")
    semantic_scholar_api_key: Optional[str] = None
    perplexity_api_key: Optional[str] = None
    ollama_model: str = "llama3.1"

    @classmethod
    def from_env(cls, **overrides) -> "ValidationSettings":
        """Read REFVAL_* environment variables; keyword overrides win."""
        values = {}
        for field in cls.model_fields:
            raw = os.environ.get(ENV_PREFIX + field.upper())
            if raw is not None and raw != "":
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)

    def create_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.http_timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
