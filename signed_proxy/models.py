"""
Pydantic models for upstream envelopes and API responses.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_valid_utf8(text: str) -> str:
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


# ============================================================================
# Upstream Envelopes
# ============================================================================

class SignedEnvelope(BaseModel):
    """Fields shared by every signed request sent upstream."""

    Nonce: str = Field(..., min_length=1, description="Single-use random token")
    Act: str = Field(default="", description="Action name, empty for the audit base query")
    Signature: str = Field(..., min_length=1, description="Base64 SHA-256 request signature")


class TimeSyncEnvelope(SignedEnvelope):
    """Envelope for the access and clock endpoints."""

    Timeout: int = Field(
        default=0,
        ge=0,
        examples=[250000, 0]
    )


class AuditEnvelope(SignedEnvelope):
    """Envelope for the audit endpoint."""

    Offset: int = Field(
        default=0,
        description="Audit cursor position",
        examples=[0, 42]
    )


# ============================================================================
# API Models
# ============================================================================

class InfoResponse(BaseModel):
    """Aggregated server time and audit log entries."""

    model_config = ConfigDict(populate_by_name=True)

    time_in_sec: str = Field(
        default="",
        alias="timeInSec",
        description="Server time reported by the upstream, empty on failure"
    )
    audit_logs: List[str] = Field(
        default_factory=list,
        alias="auditLogs",
        description="Audit entries drained in this call"
    )

    @field_validator("time_in_sec")
    @classmethod
    def replace_invalid_utf8(cls, v: str) -> str:
        """Swap undecodable upstream bytes for U+FFFD so the body stays valid JSON."""
        return _to_valid_utf8(v)

    @field_validator("audit_logs")
    @classmethod
    def replace_invalid_utf8_entries(cls, v: List[str]) -> List[str]:
        return [_to_valid_utf8(entry) for entry in v]


class HealthStatus(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["healthy", "unhealthy"])
    version: str
    upstream: str = Field(..., examples=["configured", "not configured"])
    uptime_seconds: float
    timestamp: datetime
