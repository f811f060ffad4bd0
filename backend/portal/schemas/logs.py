"""
Client log ingestion contract (POST /api/logs/client).

Field names follow the payload browsers and ForwardingSink send, so the
camelCase `clientInfo` keys are accepted as aliases.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portal.logger import LOG_LEVELS


class ClientInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_agent: str = Field(default="unknown", alias="userAgent", max_length=512)
    url: str = Field(default="unknown", max_length=2048)
    referrer: str = Field(default="", max_length=2048)
    service: Optional[str] = Field(default="unknown", max_length=100)
    log_context: Optional[str] = Field(default="client", alias="logContext", max_length=100)


class ClientLogRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    level: str
    message: str = Field(min_length=1, max_length=10_000)
    context: Dict[str, Any] = Field(default_factory=dict)
    client_info: ClientInfo = Field(default_factory=ClientInfo, alias="clientInfo")
    timestamp: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in LOG_LEVELS:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(LOG_LEVELS)}")
        return v
