"""Build layout configuration (library names, env keys, passthrough rules).

Defaults describe whisper.cpp linked against ggml-rs. Override individual keys with a
layout dict or a ``whisper-build.yaml`` file; unknown keys are ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from whisper_build_tooling.errors import ConfigurationError

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "whisper-build.yaml"

DEFAULT_BUILD_LAYOUT: dict[str, Any] = {
    # dependent library (built here) and its bundled source tree
    "library_name": "whisper",
    "source_dir": "whisper.cpp",
    "source_repo": "https://github.com/ggerganov/whisper.cpp.git",
    "bundled_headers": "ggml/include",
    # collaborator metadata
    "lib_dir_key": "DEP_GGML_RS_GGML_WHISPER_LIB_DIR",
    "bin_dir_key": "DEP_GGML_RS_GGML_WHISPER_BIN_DIR",
    "basename_key": "DEP_GGML_RS_GGML_WHISPER_BASENAME",
    "include_keys": [
        "DEP_GGML_RS_GGML_WHISPER_INCLUDE",
        "DEP_GGML_RS_INCLUDE",
        "DEP_GGML_INCLUDE",
    ],
    "default_basename": "ggml_whisper",
    "cmake_package": "ggml",
    # passthrough
    "passthrough_prefixes": ["WHISPER_", "CMAKE_"],
    "mode_control_key": "WHISPER_USE_SYSTEM_GGML",
    "reserved_keys": ["WHISPER_USE_SYSTEM_GGML", "WHISPER_DONT_GENERATE_BINDINGS"],
    # feature name -> ggml backend library suffix
    "backend_libraries": {
        "cuda": "cuda",
        "hipblas": "hip",
        "vulkan": "vulkan",
        "metal": "metal",
        "openblas": "blas",
        "intel-sycl": "sycl",
    },
    "shared_feature": "use-shared-ggml",
}

_LIST_KEYS = {"include_keys", "passthrough_prefixes", "reserved_keys"}


def resolve_build_layout(layout: dict[str, Any] | None) -> dict[str, Any]:
    """Return layout dict with defaults filled. Only known keys are taken from layout.

    List keys must be lists and backend_libraries a mapping, else ConfigurationError.
    """
    out = {
        k: (list(v) if isinstance(v, list) else dict(v) if isinstance(v, dict) else v)
        for k, v in DEFAULT_BUILD_LAYOUT.items()
    }
    if layout is None:
        return out
    for k, v in layout.items():
        if k not in out:
            log.debug("Ignoring unknown build layout key %s", k)
            continue
        if k in _LIST_KEYS:
            if v is None:
                v = []
            if not isinstance(v, list):
                msg = f"build layout key {k} must be a list, got {type(v).__name__}"
                raise ConfigurationError(msg)
            out[k] = [str(x) for x in v]
        elif k == "backend_libraries":
            if v is None:
                v = {}
            if not isinstance(v, dict):
                msg = f"build layout key {k} must be a mapping, got {type(v).__name__}"
                raise ConfigurationError(msg)
            out[k] = {str(name): str(suffix) for name, suffix in v.items()}
        else:
            out[k] = str(v)
    return out


def load_build_layout(path: Path | None) -> dict[str, Any]:
    """Load a YAML layout override from path (None or missing file -> defaults)."""
    if path is None or not path.is_file():
        return resolve_build_layout(None)
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"{path}: invalid YAML: {e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read {path}: {e}"
        raise ConfigurationError(msg) from e
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping at top level"
        raise ConfigurationError(msg)
    return resolve_build_layout(data)


def find_build_layout(manifest_dir: Path) -> dict[str, Any]:
    """Layout from manifest_dir/whisper-build.yaml when present, else defaults."""
    return load_build_layout(manifest_dir / CONFIG_FILE_NAME)
