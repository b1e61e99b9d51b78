"""
Serialization of package specs and analysis results.

Specs are loaded and validated at this boundary; everything downstream
works on immutable models. Content hashes identify a spec by what it
says, not by where it came from.
"""
from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from doccov.constants import CONTENT_HASH_LENGTH, RESULT_FILE_VERSION
from doccov.errors import MalformedSpec, NotFound
from doccov.models import PackageSpec


def canonical_json(data: Any) -> str:
    """Deterministic JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(data: Any) -> str:
    """
    Short sha256 digest of a spec or any JSON-serializable value.

    Args:
        data: A PackageSpec (hashed via its dict form) or plain JSON data

    Returns:
        The first 16 hex characters of the digest
    """
    if isinstance(data, PackageSpec):
        data = data.to_dict()
    digest = hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
    return digest[:CONTENT_HASH_LENGTH]


def load_spec(filepath: Path | str) -> PackageSpec:
    """
    Load and validate a package spec from a JSON file.

    Raises:
        NotFound: If the file does not exist
        MalformedSpec: If the file is not valid JSON or fails validation
    """
    filepath = Path(filepath)
    try:
        with filepath.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise NotFound(f"Spec file not found: {filepath}") from None
    except json.JSONDecodeError as e:
        raise MalformedSpec("", f"{filepath}: invalid JSON ({e.msg} at line {e.lineno})") from e
    return PackageSpec.from_dict(data)


def save_spec(spec: PackageSpec, filepath: Path | str) -> None:
    filepath = Path(filepath)
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(spec.to_dict(), f, indent=2)


def save_result(result: Any, filepath: Path | str, kind: str = "result") -> None:
    """
    Save an analysis result to a JSON file.

    Args:
        result: Any object with ``to_dict()``, or plain JSON data
        filepath: Path to save the JSON file
        kind: Label stored alongside the data (e.g. "diff", "quality")
    """
    data = {
        "version": RESULT_FILE_VERSION,
        "kind": kind,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "data": result.to_dict() if hasattr(result, "to_dict") else result,
    }

    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def load_result(filepath: Path | str) -> dict:
    """Load the data section of a saved result file."""
    with Path(filepath).open("r", encoding="utf-8") as f:
        return json.load(f).get("data")
