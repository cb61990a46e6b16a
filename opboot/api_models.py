from __future__ import annotations

from pydantic import BaseModel, Field


class ProbeStatus(BaseModel):
    status: str = Field(..., description="alive|ready|not-ready")
    phase: str = Field(..., description="Bootstrap step currently running")
    alive: bool
    leader: bool
    ready: bool
    updated_at: str


class MetricsServiceDescriptor(BaseModel):
    """One port of the Service that exposes the operator's own metrics."""

    port: int = Field(8383, ge=1, le=65535, description="Service port")
    protocol: str = Field("TCP", description="TCP|UDP|SCTP")
    name: str = Field("http-metrics", description="Port name used by service monitors")
    target_port: int = Field(8383, ge=1, le=65535, description="Container port the metrics listener binds")
