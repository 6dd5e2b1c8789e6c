"""Configuration for deploy-notify."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Sent as agent=<agent_name>-<version> on every delivery
    agent_name: str = "jenkins"

    # Optional YAML file holding the publisher configuration
    config_file: str | None = None

    git_executable: str = "git"

    # Used for deploy_url when the CI location is not configured
    placeholder_host: str = "http://jenkins-location-is-not-set.local/"

    model_config = {"env_prefix": "DEPLOY_NOTIFY_", "extra": "ignore"}


class PublisherConfig(BaseSettings):
    """Webhook target plus the optional ${VAR} template overrides.

    An override left as None is "not configured"; an empty string is a
    configured value and wins over every fallback.
    """

    webhook_url: str | None = None
    deploy_url: str | None = None
    environment: str | None = None
    service_alias: str | None = None
    description: str | None = None
    deployer_id: str | None = None
    deployer_name: str | None = None
    deployer_email: str | None = None

    # YAML reads ids like 12345 as ints
    model_config = {"env_prefix": "DEPLOY_NOTIFY_", "extra": "forbid", "coerce_numbers_to_str": True}


def load_publisher_config(path: str | None = None) -> PublisherConfig:
    """Load the publisher configuration from YAML, falling back to the environment.

    The file may hold the fields at top level or under a ``publisher:`` key.
    Values from the file take precedence over DEPLOY_NOTIFY_* variables.
    """
    if path is None:
        return PublisherConfig()

    with open(Path(path)) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Publisher config {path} must be a mapping, got {type(data).__name__}")

    section = (data.get("publisher") or {}) if "publisher" in data else data
    if not isinstance(section, dict):
        raise ValueError(f"Publisher section of {path} must be a mapping, got {type(section).__name__}")
    return PublisherConfig(**section)


settings = Settings()
