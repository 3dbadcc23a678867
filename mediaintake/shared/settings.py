import os
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from mediaintake.specs.common.errors import ConfigurationError

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class IntakeSettings(BaseModel):
    """Operational parameters for the intake service and notification channel.

    ``channelUrlTemplate`` must contain a ``{token}`` placeholder, e.g.
    ``wss://host/ws/{token}``.
    """

    intakeUrl: str = Field(min_length=1)
    channelUrlTemplate: str = Field(min_length=1)
    username: str = "media_api"
    password: SecretStr = Field(
        json_schema_extra={"writeOnly": True, "x-sensitive": True},
    )
    requestTimeout: Optional[float] = Field(default=None, gt=0)
    tickInterval: float = Field(default=1.0, gt=0)
    maxImageBytes: int = Field(default=DEFAULT_MAX_IMAGE_BYTES, gt=0)

    @field_validator("channelUrlTemplate")
    @classmethod
    def _has_token_placeholder(cls, value: str) -> str:
        if "{token}" not in value:
            raise ValueError("channelUrlTemplate must contain '{token}'")
        return value

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        intake_url = os.getenv("MEDIA_INTAKE_URL")
        channel_url = os.getenv("MEDIA_INTAKE_CHANNEL_URL")
        password = os.getenv("MEDIA_INTAKE_PASSWORD")
        missing = [
            name
            for name, value in (
                ("MEDIA_INTAKE_URL", intake_url),
                ("MEDIA_INTAKE_CHANNEL_URL", channel_url),
                ("MEDIA_INTAKE_PASSWORD", password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                details={"missing": missing},
            )
        payload = {
            "intakeUrl": intake_url,
            "channelUrlTemplate": channel_url,
            "password": password,
        }
        optional = {
            "username": "MEDIA_INTAKE_USERNAME",
            "requestTimeout": "MEDIA_INTAKE_TIMEOUT",
            "tickInterval": "MEDIA_INTAKE_TICK_SECONDS",
            "maxImageBytes": "MEDIA_INTAKE_MAX_IMAGE_BYTES",
        }
        for field, env_name in optional.items():
            value = os.getenv(env_name)
            if value:
                payload[field] = value
        try:
            return cls(**payload)
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid media intake configuration",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
