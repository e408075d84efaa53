from pydantic import BaseModel, Field
from typing import Literal


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    initial_backoff: float = Field(default=0.5, gt=0)
    max_backoff: float = Field(default=10.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1)


class FiatClientConfig(BaseModel):
    enabled: bool = False
    base_url: str = "http://localhost:7003"
    legacy_fallback: bool = False
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=20.0, gt=0)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    granted_authorities_enabled: bool = False


class ResourceGroupsConfig(BaseModel):
    path: str | None = None


class FiatConfig(BaseModel):
    client: FiatClientConfig = Field(default_factory=FiatClientConfig)
    resource_groups: ResourceGroupsConfig = Field(default_factory=ResourceGroupsConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
