"""Health check schemas."""

from pydantic import Field

from store_common.utils import JsonModel


class HealthCheckResponse(JsonModel):
    """Health check response."""

    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    environment: str = Field(..., description="Environment name")
    shards: list[str] = Field(..., description="Configured shard labels, primary first")
