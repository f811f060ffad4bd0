"""Health check payloads."""

from typing import List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Public liveness probe: GET /health."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class DatabaseHealth(BaseModel):
    connected: bool
    latency_ms: float


class SystemInfo(BaseModel):
    platform: str
    arch: str
    python_version: str
    cpu_count: Optional[int] = None
    load_average: Optional[List[float]] = None
    uptime_seconds: float


class DetailedHealthResponse(BaseModel):
    """Admin diagnostics: GET /api/health."""

    status: str
    timestamp: str
    version: str
    database: DatabaseHealth
    system: SystemInfo
