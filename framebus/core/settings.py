from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import os

import yaml


@dataclass(frozen=True)
class Settings:
    env: str
    redis_url: str
    inbound_stream: str
    outbound_stream: str
    consumer_group: str
    postgres_dsn: str | None = None
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"


def load_settings(path: str | Path = "config/settings.yaml") -> Settings:
    p = Path(path)
    data: Dict[str, Any] = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    # Env overrides (used by container deployments).
    env_redis_url = os.getenv("FRAMEBUS_REDIS_URL")
    env_postgres_dsn = os.getenv("FRAMEBUS_POSTGRES_DSN")
    env_log_level = os.getenv("FRAMEBUS_LOG_LEVEL")

    redis_section = data.get("redis", {})
    stream_section = redis_section.get("stream", {})
    api_section = data.get("api", {})
    return Settings(
        env=data.get("env", "dev"),
        redis_url=env_redis_url or redis_section["url"],
        inbound_stream=stream_section.get("inbound", "framebus.frame_to_host"),
        outbound_stream=stream_section.get("outbound", "framebus.host_to_frame"),
        consumer_group=stream_section.get("consumer_group", "framebus-host"),
        postgres_dsn=env_postgres_dsn or data.get("postgres", {}).get("dsn") or None,
        api_host=api_section.get("host", "0.0.0.0"),
        api_port=int(api_section.get("port", 8000)),
        log_level=(env_log_level or data.get("log_level", "INFO")).upper(),
    )
