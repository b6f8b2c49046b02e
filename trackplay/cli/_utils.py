"""Shared helpers for the TrackPlay CLI."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, NoReturn


def build_subparser(parent: argparse._SubParsersAction, name: str, **kwargs: Any) -> argparse.ArgumentParser:
    return parent.add_parser(name, **kwargs)


def require_subcommand(subparsers: argparse._SubParsersAction) -> None:
    """Force argparse to require that a sub-command is provided."""

    subparsers.required = True


def print_json(payload: Any) -> None:
    """Render a Python object as formatted JSON to stdout."""

    print(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))


def to_serializable(value: Any) -> Any:
    """Best-effort conversion for models and dataclasses into JSON-friendly structures."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return to_serializable(value.value)
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_serializable(item) for item in value]
    if hasattr(value, "model_dump"):
        return to_serializable(value.model_dump())
    if is_dataclass(value) and not isinstance(value, type):
        return to_serializable(asdict(value))
    if hasattr(value, "as_dict"):
        return to_serializable(value.as_dict())
    return str(value)


def exit_with_error(message: str, *, code: int = 1) -> NoReturn:
    """Emit a message to stderr and exit."""

    sys.stderr.write(f"Error: {message}\n")
    raise SystemExit(code)
