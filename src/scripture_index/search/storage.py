"""Snapshot persistence.

Snapshots are minified JSON written with ``orjson``. Loading is deliberately
forgiving towards the caller: a missing, unreadable, malformed or
version-mismatched file is reported as ``None`` (and logged), never raised,
so the runtime can fall back to a lazy rebuild.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, TypeVar

import orjson
from pydantic import ValidationError

from scripture_index.domain.errors import SnapshotInvalidError
from scripture_index.search.snapshots import SnapshotModel


logger = logging.getLogger(__name__)

SnapshotT = TypeVar("SnapshotT", bound=SnapshotModel)

SEARCH_SNAPSHOT_FILENAME = "search-index.json"
CONCORDANCE_SNAPSHOT_FILENAME = "concordance-index.json"
CROSS_REFERENCE_SNAPSHOT_FILENAME = "crossref-index.json"


def _load_json_payload(path: Path) -> Any:
    data = path.read_bytes()
    if data.startswith(b"\xef\xbb\xbf"):
        data = data[3:]
    return orjson.loads(data)


def parse_snapshot(payload: Any, model: type[SnapshotT]) -> SnapshotT:
    """Validate a decoded payload, raising ``SnapshotInvalidError`` on any problem."""

    if not isinstance(payload, dict):
        raise SnapshotInvalidError(f"{model.__name__} payload must be an object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {"msg": str(exc)}
        raise SnapshotInvalidError(f"{model.__name__} rejected: {first.get('msg')}") from exc


def read_snapshot(path: Path, model: type[SnapshotT]) -> SnapshotT:
    """Read and validate a snapshot file, raising ``SnapshotInvalidError``."""

    try:
        payload = _load_json_payload(path)
    except FileNotFoundError as exc:
        raise SnapshotInvalidError(f"snapshot not found: {path}") from exc
    except OSError as exc:
        raise SnapshotInvalidError(f"snapshot unreadable: {path}: {exc}") from exc
    except orjson.JSONDecodeError as exc:
        raise SnapshotInvalidError(f"snapshot is not valid JSON: {path}: {exc}") from exc
    return parse_snapshot(payload, model)


def load_snapshot(path: Path | None, model: type[SnapshotT]) -> SnapshotT | None:
    """Return the validated snapshot at ``path`` or ``None`` when it is unusable."""

    if path is None:
        logger.debug("No %s path configured", model.__name__)
        return None
    if not path.exists():
        logger.info("Snapshot %s not present; a rebuild will be required", path)
        return None
    try:
        return read_snapshot(path, model)
    except SnapshotInvalidError as exc:
        logger.warning("Ignoring snapshot %s: %s", path, exc)
        return None


def write_snapshot(path: Path, snapshot: SnapshotModel) -> Path:
    """Atomically write ``snapshot`` as compact JSON; returns the final path."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_bytes(orjson.dumps(snapshot.to_wire()))
    os.replace(tmp_path, path)
    logger.info("Wrote snapshot %s (%d bytes)", path, path.stat().st_size)
    return path
