"""Central .env loader and runtime settings. Every entry point imports this."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load the .env at the project root without overriding the real environment
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

BACKEND_DYNAMODB = "dynamodb"
BACKEND_MEMORY = "memory"


@dataclass
class Settings:
    region: str = "us-west-2"
    table_prefix: str = ""
    backend: str = BACKEND_DYNAMODB
    cache_dir: str = str(Path.home() / ".cache" / "MediStockCache")
    cache_ttl_hours: float = 24.0
    cognito_client_id: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            region=os.environ.get("AWS_DEFAULT_REGION", defaults.region),
            table_prefix=os.environ.get("MEDISTOCK_TABLE_PREFIX", defaults.table_prefix),
            backend=os.environ.get("MEDISTOCK_BACKEND", defaults.backend).lower(),
            cache_dir=os.environ.get("MEDISTOCK_CACHE_DIR", defaults.cache_dir),
            cache_ttl_hours=float(
                os.environ.get("MEDISTOCK_CACHE_TTL_HOURS", defaults.cache_ttl_hours)
            ),
            cognito_client_id=os.environ.get(
                "MEDISTOCK_COGNITO_CLIENT_ID", defaults.cognito_client_id
            ),
            log_level=os.environ.get("MEDISTOCK_LOG_LEVEL", defaults.log_level).upper(),
        )

    def table_name(self, collection: str) -> str:
        """Maps a collection name (e.g. "medicines") to its DynamoDB table name."""
        return f"{self.table_prefix}{collection}"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
