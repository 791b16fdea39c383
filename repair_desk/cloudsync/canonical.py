"""Canonical serialisation used to decide whether two order copies diverge."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from ..models import OrderRecord


def _normalise(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _normalise(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_normalise(item) for item in value]
    return value


def canonical_payload(record: OrderRecord) -> dict[str, Any]:
    """Return the record's persisted form with every optional value explicit."""

    return _normalise(record.to_dict())


def canonical_json(record: OrderRecord) -> str:
    return json.dumps(canonical_payload(record), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_digest(record: OrderRecord) -> str:
    return hashlib.sha256(canonical_json(record).encode("utf-8")).hexdigest()


def is_equal(a: OrderRecord, b: OrderRecord) -> bool:
    """Whole-record structural equality; any difference counts as modified."""

    return canonical_json(a) == canonical_json(b)


def diff_paths(a: OrderRecord, b: OrderRecord) -> list[str]:
    """Return dotted paths of the leaves that differ between ``a`` and ``b``."""

    paths: list[str] = []

    def walk(left: Any, right: Any, prefix: str) -> None:
        if isinstance(left, dict) and isinstance(right, dict):
            for key in sorted(set(left) | set(right)):
                walk(left.get(key), right.get(key), f"{prefix}.{key}" if prefix else key)
            return
        if left != right:
            paths.append(prefix or "<root>")

    walk(canonical_payload(a), canonical_payload(b), "")
    return paths


__all__ = ["canonical_digest", "canonical_json", "canonical_payload", "diff_paths", "is_equal"]
