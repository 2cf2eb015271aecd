"""Shared helpers for whisper_build_tooling (naming, env, path, version).

Used by build, cli and config modules.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TypeVar

T = TypeVar("T")

# --- Naming ---


def feature_env_key(feature: str) -> str:
    """Cargo feature env key (e.g. use-shared-ggml -> CARGO_FEATURE_USE_SHARED_GGML)."""
    return "CARGO_FEATURE_" + feature.upper().replace("-", "_")


def feature_from_env_key(key: str) -> str | None:
    """Inverse of feature_env_key: CARGO_FEATURE_INTEL_SYCL -> intel-sycl. None if not a feature key."""
    prefix = "CARGO_FEATURE_"
    if not key.startswith(prefix) or len(key) == len(prefix):
        return None
    return key[len(prefix) :].lower().replace("_", "-")


def format_cmake_value(value: object) -> str:
    """bool -> ON/OFF, Path -> posix string, anything else -> str."""
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    if isinstance(value, Path):
        return value.as_posix()
    return str(value)


# --- Env ---


def env_path(env: Mapping[str, str], key: str) -> Path | None:
    """Path from env[key], or None when unset or empty."""
    value = env.get(key)
    if not value:
        return None
    return Path(value)


def first_env_path(env: Mapping[str, str], keys: Iterable[str]) -> tuple[str, Path] | None:
    """(key, path) for the first key in keys that is set, else None."""
    for key in keys:
        p = env_path(env, key)
        if p is not None:
            return key, p
    return None


# --- Path ---


def dir_has_contents(path: Path) -> bool:
    """True if path is a directory with at least one entry."""
    try:
        return any(path.iterdir())
    except OSError:
        return False


def walk_dirs(root: Path) -> list[Path]:
    """root and every directory below it, depth-first in sorted order. [] if root is not a dir."""
    if not root.is_dir():
        return []
    out = [root]
    for child in sorted(root.iterdir()):
        if child.is_dir() and not child.is_symlink():
            out.extend(walk_dirs(child))
    return out


# --- Version ---

_PROJECT_VERSION = re.compile(r'^project\("whisper\.cpp" VERSION ([^)\s]+)\)?')


def read_cmake_project_version(cmake_lists: Path) -> str | None:
    """Version from the `project("whisper.cpp" VERSION x.y.z)` line in CMakeLists.txt, else None."""
    with cmake_lists.open() as f:
        for line in f:
            m = _PROJECT_VERSION.match(line.strip())
            if m:
                return m.group(1).rstrip(")")
    return None


# --- Collections ---


def dedupe(items: Iterable[T]) -> list[T]:
    """Drop repeats, keep first occurrence order."""
    seen: set[T] = set()
    out: list[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out
