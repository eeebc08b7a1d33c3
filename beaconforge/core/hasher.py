"""Hashing for artifact addresses and the step journal's chain.

Every digest is SHA-256 over canonical JSON (sorted keys, compact, ASCII),
so a value hashes identically across runs and processes.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

ADDRESS_PREFIX = "sha256:"


def canonical_json_bytes(obj: Any) -> bytes:
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def blob_address(data: bytes) -> str:
    """``sha256:<hex>`` address of one file's bytes."""
    return ADDRESS_PREFIX + sha256_hex(data)


def address_digest(address: str) -> str:
    return address.removeprefix(ADDRESS_PREFIX)


def manifest_address(files: Mapping[str, str]) -> str:
    """Address of a file bundle, taken over its path -> blob address map.

    Two bundles holding the same files share an address whatever their
    names.
    """
    return blob_address(canonical_json_bytes(dict(files)))


def compute_step_hash(step_id: str, payload: dict[str, Any]) -> str:
    """Digest of a step's inputs or result, recorded with each transition."""
    return sha256_hex(canonical_json_bytes({"step_id": step_id, "payload": payload}))


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """Seal of a journal entry; its own ``entry_hash`` field is left out."""
    unsealed = dict(entry_dict)
    unsealed.pop("entry_hash", None)
    return sha256_hex(canonical_json_bytes(unsealed))
