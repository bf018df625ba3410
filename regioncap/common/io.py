"""Shared IO helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def read_json(json_path: str | Path) -> Dict[str, Any]:
    """Load a JSON document whose top level must be an object.

    Args:
        json_path: Path to the JSON file

    Returns:
        The decoded mapping

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the file is not valid JSON or is not a JSON object
    """
    path = Path(json_path)
    if not path.is_file():
        raise FileNotFoundError(f"JSON file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(
                f"Malformed JSON at {path}:{exc.lineno}:{exc.colno}: {exc.msg}"
            ) from exc

    if not isinstance(payload, dict):
        raise ValueError(
            f"{path} must contain a JSON object at the top level, got {type(payload).__name__}"
        )
    return payload


__all__ = ["read_json"]
