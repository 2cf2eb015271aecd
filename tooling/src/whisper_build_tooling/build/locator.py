"""Locate the shared ggml build published by ggml-rs (DEP_GGML_RS_GGML_WHISPER_* metadata).

Never touches the filesystem and never fails: existence is checked later by the plan builder.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from whisper_build_tooling.config import resolve_build_layout
from whisper_build_tooling.helpers import env_path, first_env_path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedLibraryLocation:
    lib_dir: Path | None = None
    include_dir: Path | None = None
    cmake_config_dir: Path | None = None
    bin_dir: Path | None = None
    basename: str = "ggml_whisper"

    @property
    def prefix(self) -> Path | None:
        """Install prefix the collaborator used (parent of lib_dir)."""
        return self.lib_dir.parent if self.lib_dir is not None else None

    @property
    def published(self) -> bool:
        return self.lib_dir is not None


def locate_shared_library(
    metadata: Mapping[str, str],
    layout: dict[str, Any] | None = None,
) -> SharedLibraryLocation:
    """Build a SharedLibraryLocation from collaborator metadata keys.

    include_dir falls back to <prefix>/include and cmake_config_dir is always
    <prefix>/lib/cmake/<package> when lib_dir is known.
    """
    cfg = resolve_build_layout(layout)
    lib_dir = env_path(metadata, cfg["lib_dir_key"])
    bin_dir = env_path(metadata, cfg["bin_dir_key"])
    basename = metadata.get(cfg["basename_key"]) or cfg["default_basename"]

    if lib_dir is not None:
        log.debug("Found %s: %s", cfg["lib_dir_key"], lib_dir)
    else:
        log.debug("%s not set", cfg["lib_dir_key"])
    if cfg["basename_key"] not in metadata:
        log.debug("%s not set, using %s", cfg["basename_key"], basename)

    include_dir: Path | None = None
    found = first_env_path(metadata, cfg["include_keys"])
    if found is not None:
        key, include_dir = found
        log.debug("Found %s: %s", key, include_dir)
    elif lib_dir is not None:
        include_dir = lib_dir.parent / "include"

    cmake_config_dir = (
        lib_dir.parent / "lib" / "cmake" / cfg["cmake_package"] if lib_dir is not None else None
    )
    return SharedLibraryLocation(
        lib_dir=lib_dir,
        include_dir=include_dir,
        cmake_config_dir=cmake_config_dir,
        bin_dir=bin_dir,
        basename=basename,
    )
