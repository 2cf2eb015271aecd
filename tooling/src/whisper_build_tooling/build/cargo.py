"""Cargo build-script instruction lines (one instruction per line on stdout)."""

from __future__ import annotations

from pathlib import Path


def warning(message: str) -> str:
    return f"cargo:warning={message}"


def rerun_if_env_changed(key: str) -> str:
    return f"cargo:rerun-if-env-changed={key}"


def metadata(key: str, value: str) -> str:
    """Metadata for dependents (visible to them as DEP_<links>_<KEY>)."""
    return f"cargo:{key}={value}"


def include(path: Path) -> str:
    return metadata("include", str(path))
