"""One-time snapshot of the invoking build's environment.

Everything downstream of from_env works off this record; nothing else reads os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from whisper_build_tooling.build.target import TargetPlatform, resolve_target
from whisper_build_tooling.config import resolve_build_layout
from whisper_build_tooling.errors import ConfigurationError
from whisper_build_tooling.helpers import env_path, feature_from_env_key

log = logging.getLogger(__name__)

# extra env read by individual features
FEATURE_ENV_KEYS = ("AMDGPU_TARGETS", "BLAS_INCLUDE_DIRS", "VULKAN_SDK", "HIP_PATH")


def filter_passthrough(
    env: Mapping[str, str],
    prefixes: list[str] | tuple[str, ...],
    reserved: list[str] | tuple[str, ...],
) -> dict[str, str]:
    """Entries whose key starts with one of prefixes, minus reserved keys. Sorted by key.

    Reserved keys that were set are dropped with a warning.
    """
    reserved_set = set(reserved)
    out: dict[str, str] = {}
    for k in sorted(env):
        if not any(k.startswith(p) for p in prefixes):
            continue
        if k in reserved_set:
            log.warning("Ignoring reserved passthrough flag %s", k)
            continue
        out[k] = env[k]
    return out


@dataclass(frozen=True)
class BuildInputs:
    out_dir: Path
    manifest_dir: Path
    target: TargetPlatform
    features: frozenset[str] = frozenset()
    debug: bool = False
    passthrough: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)
    feature_env: Mapping[str, str] = field(default_factory=dict)
    docs_rs: bool = False

    def has(self, feature: str) -> bool:
        return feature in self.features

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        layout: dict[str, Any] | None = None,
    ) -> BuildInputs:
        """Read cargo build-script env (OUT_DIR, CARGO_MANIFEST_DIR, TARGET, PROFILE, CARGO_FEATURE_*)."""
        if env is None:
            env = dict(os.environ)
        cfg = resolve_build_layout(layout)
        out_dir = env_path(env, "OUT_DIR")
        if out_dir is None:
            msg = "OUT_DIR is not set; whisper-build must run as a cargo build script or with --out-dir"
            raise ConfigurationError(msg)
        manifest_dir = env_path(env, "CARGO_MANIFEST_DIR") or Path.cwd()
        features = frozenset(
            f for f in (feature_from_env_key(k) for k in env) if f is not None
        )
        debug = env.get("PROFILE") == "debug" or "force-debug" in features
        metadata_keys = {cfg["lib_dir_key"], cfg["bin_dir_key"], cfg["basename_key"]}
        metadata_keys.update(cfg["include_keys"])
        return cls(
            out_dir=out_dir,
            manifest_dir=manifest_dir,
            target=resolve_target(env.get("TARGET")),
            features=features,
            debug=debug,
            passthrough=filter_passthrough(
                env, cfg["passthrough_prefixes"], [*cfg["reserved_keys"], cfg["mode_control_key"]]
            ),
            metadata={k: env[k] for k in sorted(metadata_keys) if env.get(k)},
            feature_env={k: env[k] for k in FEATURE_ENV_KEYS if env.get(k)},
            docs_rs="DOCS_RS" in env,
        )
