"""
Snapshot cache for the Canvas dashboard.
Persists the most recent successful sync as one JSON document per user:
- Whole-snapshot writes (temp file + rename)
- Reads that treat any failure as "no cache"
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import CACHE_PATH as _CONFIGURED_CACHE_PATH
from utils.datetime_utils import parse_canvas_datetime, to_utc_iso_z

logger = logging.getLogger(__name__)

CACHE_PATH = _CONFIGURED_CACHE_PATH


@dataclass(frozen=True)
class CacheSnapshot:
    """Everything the dashboard needs to render without the network."""
    cached_at: datetime
    user: Optional[Dict[str, Any]] = None
    courses: List[Dict[str, Any]] = field(default_factory=list)
    assignments: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    calendar_events: List[Dict[str, Any]] = field(default_factory=list)
    announcements: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.cached_at, datetime) or self.cached_at.tzinfo is None:
            raise ValueError("cached_at must be a timezone-aware datetime")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cached_at": to_utc_iso_z(self.cached_at, timespec="microseconds"),
            "user": self.user,
            "courses": self.courses,
            # Pairs keep the course order explicit in the file
            "assignments": [[name, items] for name, items in self.assignments.items()],
            "calendar_events": self.calendar_events,
            "announcements": self.announcements,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheSnapshot":
        if not isinstance(data, dict):
            raise ValueError("cache document must be a JSON object")

        assignments: Dict[str, List[Dict[str, Any]]] = {}
        for pair in data.get("assignments") or []:
            name, items = pair
            assignments[str(name)] = list(items)

        cached_at = data.get("cached_at")
        if not isinstance(cached_at, str):
            raise ValueError("cached_at must be an ISO 8601 string")

        user = data.get("user")
        if user is not None and not isinstance(user, dict):
            raise ValueError("cached user must be an object")

        return cls(
            cached_at=parse_canvas_datetime(cached_at),
            user=user,
            courses=list(data.get("courses") or []),
            assignments=assignments,
            calendar_events=list(data.get("calendar_events") or []),
            announcements=list(data.get("announcements") or []),
        )


def _resolve(path: Optional[os.PathLike]) -> Path:
    return Path(path) if path else Path(CACHE_PATH)


def save_cache(snapshot: CacheSnapshot, path: Optional[os.PathLike] = None) -> Optional[str]:
    """
    Write the snapshot, replacing any previous one.

    Returns None on success or a human-readable error; never raises for
    I/O or serialization problems.
    """
    target = _resolve(path)
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot.to_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".cache-", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, target)
        tmp_name = None
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write cache %s: %s", target, e)
        return str(e)
    finally:
        if tmp_name is not None:
            try:
                os.remove(tmp_name)
            except OSError:
                pass

    logger.debug("Cache written to %s", target)
    return None


def load_cache(path: Optional[os.PathLike] = None) -> Optional[CacheSnapshot]:
    """Read the snapshot; any failure means there is no usable cache."""
    target = _resolve(path)
    try:
        with open(target, "r", encoding="utf-8") as f:
            data = json.load(f)
        return CacheSnapshot.from_dict(data)
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.debug("Ignoring unusable cache %s: %s", target, e)
        return None


def clear_cache(path: Optional[os.PathLike] = None) -> bool:
    """Delete the cache file. Returns True if a file was removed."""
    target = _resolve(path)
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    return True
