"""
Environment configuration and logging setup.
"""

import json
import logging
import os
import sys
from typing import Dict

import structlog
from dotenv import load_dotenv

from query_autocomplete.core.models import AutoCompleteConfig

DEFAULT_CONNECTION = "default"


def load_config() -> AutoCompleteConfig:
    """
    Read the configuration from the environment (and a .env file, if any).

    MONGO_URI configures a connection named "default"; MONGO_CONNECTIONS holds
    a JSON object of name -> URI and wins on name clashes.
    """
    load_dotenv()

    connections: Dict[str, str] = {}
    mongo_uri = os.getenv("MONGO_URI")
    if mongo_uri:
        connections[DEFAULT_CONNECTION] = mongo_uri

    raw_connections = os.getenv("MONGO_CONNECTIONS")
    if raw_connections:
        parsed = json.loads(raw_connections)
        if not isinstance(parsed, dict):
            raise ValueError("MONGO_CONNECTIONS must be a JSON object of name -> URI")
        connections.update({str(name): str(uri) for name, uri in parsed.items()})

    return AutoCompleteConfig(
        connections=connections,
        sample_size=int(os.getenv("SAMPLE_SIZE", "1000")),
        sample_time_budget=float(os.getenv("SAMPLE_TIME_BUDGET", "10")),
        schema_ttl_seconds=float(os.getenv("SCHEMA_TTL_SECONDS", "3600")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "8000")),
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for the process."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if sys.stdout.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO
