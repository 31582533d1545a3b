"""Configuration models for logseq-bridge."""

from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import Optional
import re

from logseq_bridge.services.exceptions import GuidanceError

DEFAULT_ENDPOINT = "http://127.0.0.1:12315/api"


class LogseqConfig(BaseModel):
    """Connection settings for Logseq's local HTTP API server."""

    endpoint: HttpUrl = Field(
        default=DEFAULT_ENDPOINT,
        description="Logseq HTTP API endpoint (Settings > Features > HTTP APIs server)"
    )

    token: Optional[str] = Field(
        default=None,
        description="Authorization token configured in the Logseq API server"
    )

    timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Per-request timeout in seconds"
    )

    model_config = {"frozen": True}


class Configuration(BaseModel):
    """Root configuration for logseq-bridge."""

    logseq: LogseqConfig = Field(default_factory=LogseqConfig, description="Logseq API settings")

    filters: dict[str, str] = Field(
        default_factory=dict,
        description="Named line filters for --less/--only (name -> regex)"
    )

    @field_validator("filters")
    @classmethod
    def validate_filters(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject filters that are not valid regular expressions."""
        for name, pattern in v.items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Filter '{name}' is not a valid regex: {e}") from e
        return v

    def require_token(self) -> str:
        """Return the API token, or explain how to provide one.

        Raises:
            GuidanceError: If no token is configured
        """
        if not self.logseq.token:
            raise GuidanceError(
                "LOGSEQ_TOKEN environment var must be set "
                "(or logseq.token in the config file)."
            )
        return self.logseq.token

    model_config = {"frozen": True}
