"""File-backed JSON cache.

Each key maps to one file ``<cache_dir>/<percent-encoded key>.json`` holding
``{"metadata": {"creationDate": ...}, "data": ...}``. Entries older than the
expiration window read as missing and are removed on access.
"""

from __future__ import annotations

import json
import logging
import shutil
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote

from medistock.models.documents import (
    format_timestamp,
    medicine_from_document,
    medicine_to_document,
    parse_timestamp,
)
from medistock.models.inventory import Medicine, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24.0


class LocalCacheService:
    def __init__(self, cache_dir: Union[str, Path], ttl_hours: float = DEFAULT_TTL_HOURS):
        self.cache_dir = Path(cache_dir)
        self.ttl = timedelta(hours=ttl_hours)

    def _path(self, key: str) -> Path:
        # Percent-encoded so any key is a single valid file name
        return self.cache_dir / f"{quote(key, safe='')}.json"

    def save(self, key: str, data: Any) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "metadata": {"creationDate": format_timestamp(utcnow())},
            "data": data,
        }
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, default=str)
        logger.debug("Cached %s", key)

    def fetch(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            created = parse_timestamp(payload["metadata"]["creationDate"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable cache entry %s removed: %s", key, e)
            self.remove(key)
            return None
        if created is None or utcnow() - created > self.ttl:
            logger.debug("Cache entry %s expired", key)
            self.remove(key)
            return None
        return payload.get("data")

    def exists(self, key: str) -> bool:
        return self.fetch(key) is not None

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear_all(self) -> None:
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        logger.info("Cache cleared: %s", self.cache_dir)

    # --- Typed helpers ---

    def save_medicines(self, key: str, medicines: list[Medicine]) -> None:
        self.save(key, [medicine_to_document(m) for m in medicines])

    def fetch_medicines(self, key: str) -> Optional[list[Medicine]]:
        data = self.fetch(key)
        if data is None:
            return None
        return [medicine_from_document(d) for d in data]
