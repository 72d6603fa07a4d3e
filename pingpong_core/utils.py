"""
pingpong_core.utils
-------------------
Lightweight helpers for timestamps, hex ids and canonical JSON used by the
audit trail.
"""

from __future__ import annotations
import json, time
from typing import Any, Dict


def now_unix() -> int:
    # Token timestamps are whole unix seconds
    return int(time.time())


def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def to_hex(b: bytes) -> str:
    return b.hex()


def from_hex(s: str) -> bytes:
    return bytes.fromhex(s.strip())


def canonical_json(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
