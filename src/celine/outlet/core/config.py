# celine/outlet/core/config.py
"""
Configuration for the MQTT output.

Process-level settings come from the environment (``Settings``). The
output itself is described in YAML under an ``output`` key::

    output:
      host: "${MQTT_HOST:-localhost}"
      topic: "events/%{type}"
      qos: 1
      ssl: true
      ca_file: /etc/outlet/root-CA.crt

Later files override keys of earlier ones.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from celine.outlet.contracts.broker import ConnectionOptions, QoS
from celine.outlet.core.errors import ConfigurationError
from celine.outlet.core.loader import load_yaml_files, merge_dicts, substitute_env_vars

logger = logging.getLogger(__name__)

MQTT_VERSIONS = ("3.1", "3.1.1", "5")


class Settings(BaseSettings):
    """Environment-driven settings with sensible defaults."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Glob patterns
    outlet_config_paths: list[str] = Field(
        default_factory=lambda: ["config/outlet.yaml"]
    )


class OutputConfig(BaseModel):
    """Validated options of the MQTT output."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Broker
    host: str
    port: int | None = None
    client_id: str | None = None
    username: str | None = None
    password: str | None = None
    version: str = "3.1.1"
    clean_session: bool = True
    keep_alive: int = 15

    # TLS
    ssl: bool = False
    cert_file: str | None = None
    key_file: str | None = None
    ca_file: str | None = None

    # Last will
    will_topic: str | None = None
    will_payload: str | None = None
    will_qos: QoS = QoS.AT_MOST_ONCE
    will_retain: bool = False

    # Publishing
    topic: str
    retain: bool = False
    qos: QoS = QoS.AT_MOST_ONCE
    codec: str = "json"
    codec_options: dict[str, Any] = Field(default_factory=dict)

    # Delivery
    connect_retry_interval: float = 10.0
    max_retries: int | None = None
    queue_max_size: int | None = None
    queue_overflow: Literal["reject", "drop_oldest"] = "reject"

    @field_validator("host", "topic")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("port")
    @classmethod
    def _valid_port(cls, v: int | None) -> int | None:
        if v is not None and not 0 < v < 65536:
            raise ValueError(f"port {v} out of range 1-65535")
        return v

    @field_validator("version", mode="before")
    @classmethod
    def _valid_version(cls, v: Any) -> str:
        v = str(v)
        if v == "5.0":
            v = "5"
        if v not in MQTT_VERSIONS:
            raise ValueError(f"unsupported MQTT version '{v}', expected one of {MQTT_VERSIONS}")
        return v

    @field_validator("keep_alive")
    @classmethod
    def _valid_keep_alive(cls, v: int) -> int:
        if v < 0:
            raise ValueError("keep_alive cannot be negative")
        return v

    @field_validator("connect_retry_interval")
    @classmethod
    def _positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("connect_retry_interval must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def _valid_max_retries(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("max_retries cannot be negative")
        return v

    @field_validator("queue_max_size")
    @classmethod
    def _valid_queue_size(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("queue_max_size must be at least 1")
        return v

    @model_validator(mode="after")
    def _tls_pair(self) -> "OutputConfig":
        if bool(self.cert_file) != bool(self.key_file):
            raise ValueError("cert_file and key_file must be set together")
        return self

    def to_connection_options(self) -> ConnectionOptions:
        return ConnectionOptions(
            host=self.host,
            port=self.port,
            client_id=self.client_id,
            username=self.username,
            password=self.password,
            ssl=self.ssl,
            cert_file=self.cert_file,
            key_file=self.key_file,
            ca_file=self.ca_file,
            version=self.version,
            clean_session=self.clean_session,
            keep_alive=self.keep_alive,
            will_topic=self.will_topic,
            will_payload=self.will_payload,
            will_qos=self.will_qos,
            will_retain=self.will_retain,
        )


def parse_output_config(raw: dict[str, Any]) -> OutputConfig:
    """
    Validate a raw ``output`` mapping.

    Raises:
        ConfigurationError: If any option is missing or invalid.
    """
    try:
        return OutputConfig.model_validate(substitute_env_vars(raw))
    except (ValidationError, ValueError) as exc:
        raise ConfigurationError(f"Invalid output configuration: {exc}") from exc


def load_output_config(patterns: Iterable[str]) -> OutputConfig:
    """
    Load the ``output`` section from YAML files.

    Raises:
        FileNotFoundError: If no file matches or none defines ``output``.
        ConfigurationError: If the merged options are invalid.
    """
    patterns = list(patterns)
    yamls = load_yaml_files(patterns)

    raw: dict[str, Any] = {}
    for data in yamls:
        section = data.get("output")
        if section:
            raw = merge_dicts(raw, section)

    if not raw:
        raise FileNotFoundError(f"No 'output' section found in {patterns}")

    cfg = parse_output_config(raw)
    logger.info(
        "Loaded output config (host=%s:%s, topic=%s, qos=%d, ssl=%s)",
        cfg.host,
        cfg.port or "default",
        cfg.topic,
        cfg.qos,
        cfg.ssl,
    )
    return cfg


settings = Settings()
