"""Utilities for persisting update-cycle observability artifacts."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from netgraph.app.config import REPO_ROOT, ObservabilityConfig

LOGGER = logging.getLogger(__name__)


def _ensure_timezone(value: datetime) -> datetime:
    """Return a timezone-aware datetime normalised to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalise_payload(value: object) -> object:
    """Convert payload values into JSON serialisable primitives."""

    if isinstance(value, datetime):
        return _ensure_timezone(value).isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _normalise_payload(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_normalise_payload(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


class ObservabilityService:
    """Append one manifest line per update cycle when enabled.

    Persistence failures are logged and swallowed so a render cycle never
    fails because the manifest directory is unwritable.
    """

    def __init__(
        self,
        config: ObservabilityConfig,
        *,
        root_dir: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        base_root = root_dir or REPO_ROOT
        self._root = self._resolve_root(base_root, config.root_dir)
        self._updates_path = self._root / config.updates_filename

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def updates_path(self) -> Path:
        return self._updates_path

    def now(self) -> datetime:
        """Return the current timestamp in UTC."""

        return _ensure_timezone(self._clock())

    def record_update(self, payload: Mapping[str, object]) -> None:
        """Append an update-cycle manifest (counts, steps, timings)."""

        if not self._config.enabled:
            return
        enriched = dict(payload)
        enriched.setdefault("timestamp", self.now())
        self._write_json_line(self._updates_path, enriched)

    def load_updates(self, limit: Optional[int] = None) -> List[Mapping[str, object]]:
        """Read back recorded manifests, newest last.

        Lines that fail to parse are skipped with a warning.
        """

        if not self._updates_path.exists():
            return []
        records: List[Mapping[str, object]] = []
        try:
            with self._updates_path.open("r", encoding="utf-8") as handle:
                for line in handle:
                    stripped = line.strip()
                    if not stripped:
                        continue
                    try:
                        records.append(json.loads(stripped))
                    except json.JSONDecodeError:
                        LOGGER.warning("Skipping malformed observability line in %s", self._updates_path)
        except OSError:
            LOGGER.exception("Failed to read observability manifests from %s", self._updates_path)
            return []
        if limit is not None:
            return records[-limit:] if limit > 0 else []
        return records

    def _write_json_line(self, path: Path, payload: Mapping[str, object]) -> None:
        normalised = _normalise_payload(dict(payload))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(normalised, sort_keys=True))
                handle.write("\n")
        except OSError:
            LOGGER.exception("Failed to write observability payload to %s", path)

    @staticmethod
    def _resolve_root(base_root: Path, configured: str) -> Path:
        """Resolve the configured observability directory relative to the repo root."""

        candidate = Path(configured)
        if not candidate.is_absolute():
            candidate = (base_root / candidate).resolve()
        return candidate


__all__ = ["ObservabilityService"]
