"""File-backed storage of finance states in YAML or JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .entities import FinanceState
from .errors import ConfigError

__all__ = ["load_finance_state", "save_finance_state", "read_state_mapping"]

_YAML_SUFFIXES = {"yaml", "yml"}


def _format_for(path: Path, format: str | None) -> str:
    fmt = (format or path.suffix.lstrip(".")).lower()
    if fmt in _YAML_SUFFIXES:
        return "yaml"
    if fmt == "json":
        return "json"
    raise ConfigError(f"Unsupported state format '{fmt}' for {path}")


def read_state_mapping(path: str | Path, *, format: str | None = None) -> dict[str, Any]:
    """Read the raw mapping stored at ``path``; raises FileNotFoundError when missing."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = _format_for(path, format)
    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) if fmt == "yaml" else json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"State root must be a mapping (source={path})")
    # Accept both a bare state and {"state": {...}} envelopes
    if "state" in data and isinstance(data["state"], dict):
        return data["state"]
    return data


def load_finance_state(
    path: str | Path, *, format: str | None = None
) -> FinanceState | None:
    """
    Load a finance state from a YAML or JSON file.

    **Args:**
        path: File to read
        format: ``"yaml"`` or ``"json"``; inferred from the suffix when omitted

    **Returns:**
        The FinanceState, or None when the file does not exist

    **Raises:**
        ConfigError: If the file cannot be parsed or holds an invalid payload
    """
    try:
        mapping = read_state_mapping(path, format=format)
    except FileNotFoundError:
        return None
    return FinanceState.from_dict(mapping)


def save_finance_state(
    state: FinanceState, path: str | Path, *, format: str | None = None
) -> None:
    """Write ``state`` to ``path`` (parents created), YAML or JSON by suffix."""
    path = Path(path)
    fmt = _format_for(path, format)
    payload = state.to_dict()
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "yaml":
        text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
    path.write_text(text, encoding="utf-8")
