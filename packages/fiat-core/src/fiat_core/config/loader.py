"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import FiatConfig


def load_config(cli_path: str | None = None) -> FiatConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults.

    An empty file given on the command line means defaults; empty discovered
    files are skipped.
    """
    explicit = Path(cli_path) if cli_path else None
    config_paths = [
        explicit,
        Path("./fiat.yaml"),
        Path.home() / ".fiat" / "config.yaml",
    ]

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    if path is explicit:
                        return FiatConfig()
                    continue
                raw = _expand_env_vars(raw)
                return FiatConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except (TypeError, ValidationError) as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return FiatConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `fiat config init`
DEFAULT_CONFIG_TEMPLATE = """\
# fiat.yaml

# Remote authorization service
client:
  enabled: false               # when false every permission check is allowed
  base_url: "http://localhost:7003"
  legacy_fallback: false       # allow requests when the service is unreachable
  connect_timeout: 10
  read_timeout: 20
  retry:
    max_attempts: 3
    initial_backoff: 0.5
    max_backoff: 10
    multiplier: 2
  granted_authorities_enabled: false

# Rule-based permissions
resource_groups:
  path: null                   # e.g. "resource-groups.yaml"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
