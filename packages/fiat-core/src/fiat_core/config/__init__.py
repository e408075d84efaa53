from .loader import load_config
from .models import (
    FiatClientConfig,
    FiatConfig,
    ResourceGroupsConfig,
    RetryConfig,
)

__all__ = [
    "FiatClientConfig",
    "FiatConfig",
    "ResourceGroupsConfig",
    "RetryConfig",
    "load_config",
]
