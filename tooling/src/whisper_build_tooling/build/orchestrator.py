"""Build-script pipeline: locate -> select mode -> plan -> execute -> emit link/header instructions.

run() is the cargo build-script entry point; it prints instructions to stdout and returns 0/1.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

from whisper_build_tooling.build import cargo
from whisper_build_tooling.build.executor import execute
from whisper_build_tooling.build.headers import select_headers
from whisper_build_tooling.build.inputs import FEATURE_ENV_KEYS, BuildInputs
from whisper_build_tooling.build.link import LinkDirective, emit_link_directive
from whisper_build_tooling.build.locator import SharedLibraryLocation, locate_shared_library
from whisper_build_tooling.build.mode import BuildMode, select_mode
from whisper_build_tooling.build.plan import NativeBuildPlan, build_plan
from whisper_build_tooling.build.runtime_libs import (
    copy_runtime_libraries,
    profile_dir_from_out_dir,
)
from whisper_build_tooling.build.source import ensure_source_tree, source_version, stage_source
from whisper_build_tooling.config import find_build_layout, resolve_build_layout
from whisper_build_tooling.errors import BuildFailure, ConfigurationError
from whisper_build_tooling.helpers import env_path, walk_dirs

log = logging.getLogger(__name__)


@dataclass
class BuildResult:
    mode: BuildMode
    location: SharedLibraryLocation
    headers: tuple[Path, ...]
    plan: NativeBuildPlan | None = None
    artifact_path: Path | None = None
    directive: LinkDirective | None = None
    version: str | None = None
    instructions: list[str] = field(default_factory=list)


def resolve_mode(
    inputs: BuildInputs, layout: dict[str, Any] | None = None
) -> tuple[SharedLibraryLocation, BuildMode]:
    """Locator + mode selector. Raises ConfigurationError before any expensive work."""
    cfg = resolve_build_layout(layout)
    location = locate_shared_library(inputs.metadata, cfg)
    mode = select_mode(inputs.has(cfg["shared_feature"]), location, cfg["lib_dir_key"])
    return location, mode


def _rerun_keys(cfg: dict[str, Any]) -> list[str]:
    keys = [cfg["lib_dir_key"], cfg["bin_dir_key"], cfg["basename_key"], *cfg["include_keys"]]
    keys.extend(FEATURE_ENV_KEYS)
    return keys


def run_pipeline(
    inputs: BuildInputs,
    layout: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> BuildResult:
    """Run every stage and collect the cargo instructions. Raises ConfigurationError/BuildFailure."""
    cfg = resolve_build_layout(layout)
    location, mode = resolve_mode(inputs, cfg)
    lines = [cargo.rerun_if_env_changed(k) for k in _rerun_keys(cfg)]
    if mode is BuildMode.SHARED_LINK:
        lines.append(
            cargo.warning(
                f"[GGML] Using shared ggml from {location.lib_dir} (basename {location.basename})"
            )
        )

    source, notes = ensure_source_tree(
        inputs.manifest_dir, cfg["source_dir"], cfg["source_repo"], inputs.out_dir
    )
    lines.extend(cargo.warning(n) for n in notes)

    headers = select_headers(mode, location, source, cfg)
    lines.extend(cargo.include(h) for h in headers)
    result = BuildResult(mode=mode, location=location, headers=headers, instructions=lines)

    if inputs.docs_rs:
        log.debug("DOCS_RS set, skipping native build")
        return result

    staged = stage_source(source, inputs.out_dir / cfg["source_dir"])
    plan = build_plan(mode, location, inputs.features, inputs, staged, cfg)
    artifact = execute(plan, inputs.out_dir, timeout=timeout)
    directive = emit_link_directive(
        mode,
        artifact,
        inputs.features,
        location,
        target=inputs.target,
        system_libraries=plan.system_libraries,
        extra_search_paths=walk_dirs(inputs.out_dir / "build"),
        layout=cfg,
    )
    lines.extend(directive.instructions())

    if mode is BuildMode.SHARED_LINK and inputs.target.is_windows:
        dll_dir = location.bin_dir or location.lib_dir
        dest = profile_dir_from_out_dir(inputs.out_dir)
        if dll_dir is not None and dest is not None:
            copied = copy_runtime_libraries(dll_dir, location.basename, dest)
            if copied:
                lines.append(
                    cargo.warning(f"[GGML] Copied {len(copied)} namespace-specific GGML libraries")
                )

    version = source_version(staged)
    lines.append(cargo.metadata("WHISPER_CPP_VERSION", version))

    result.plan = plan
    result.artifact_path = artifact
    result.directive = directive
    result.version = version
    return result


def run(
    env: Mapping[str, str] | None = None,
    layout: dict[str, Any] | None = None,
    timeout: float | None = None,
    out: TextIO | None = None,
) -> int:
    """Build-script entry point. Prints cargo instructions to out (stdout). Returns 0 or 1."""
    out = out if out is not None else sys.stdout
    if env is None:
        env = dict(os.environ)
    try:
        if layout is None:
            layout = find_build_layout(env_path(env, "CARGO_MANIFEST_DIR") or Path.cwd())
        inputs = BuildInputs.from_env(env, layout)
        result = run_pipeline(inputs, layout, timeout=timeout)
    except (ConfigurationError, BuildFailure) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    for line in result.instructions:
        print(line, file=out)
    print(f"✅ whisper {result.mode.value} build complete", file=sys.stderr)
    return 0
