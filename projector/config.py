"""
Projector configuration from environment variables.

Environment Variables:
    PROJECTOR_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    PROJECTOR_LOG_FORMAT: Log format (json, text) - default: json
    PROJECTOR_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    PROJECTOR_METRICS_PORT: HTTP port for /metrics endpoint - default: 8080
    PROJECTOR_LOOKUP_TIMEOUT_SECONDS: Deadline for one projection call - default: none
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ProjectorConfig:
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_enabled: bool = False
    metrics_port: int = 8080
    lookup_timeout_seconds: Optional[float] = None

    @staticmethod
    def from_env() -> "ProjectorConfig":
        timeout = os.getenv("PROJECTOR_LOOKUP_TIMEOUT_SECONDS")
        return ProjectorConfig(
            log_level=os.getenv("PROJECTOR_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("PROJECTOR_LOG_FORMAT", "json").lower(),
            metrics_enabled=os.getenv("PROJECTOR_METRICS_ENABLED", "false").lower() == "true",
            metrics_port=int(os.getenv("PROJECTOR_METRICS_PORT", "8080")),
            lookup_timeout_seconds=float(timeout) if timeout else None,
        )
