"""`whisper-build run|plan|locate|headers`: build script and dry-run inspection commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import yaml

from whisper_build_tooling.build.headers import clang_args, select_headers
from whisper_build_tooling.build.inputs import BuildInputs
from whisper_build_tooling.build.link import emit_link_directive
from whisper_build_tooling.build.locator import SharedLibraryLocation
from whisper_build_tooling.build.orchestrator import resolve_mode
from whisper_build_tooling.build.orchestrator import run as run_build_script
from whisper_build_tooling.build.plan import build_plan
from whisper_build_tooling.cli.parse_common import (
    add_common_args,
    env_from_args,
    layout_from_args,
)
from whisper_build_tooling.config import find_build_layout, resolve_build_layout
from whisper_build_tooling.errors import BuildFailure, ConfigurationError


def _argv(argv: list[str] | None) -> list[str]:
    if argv is None:
        return sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'whisper-build <cmd>'
    return argv


def run_build_argv(argv: list[str] | None = None) -> None:
    """Run the full pipeline and print cargo instructions (what build.rs would do)."""
    ap = argparse.ArgumentParser(
        prog="whisper-build run", description="Configure, build and link whisper.cpp"
    )
    add_common_args(ap)
    ap.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill cmake after this many seconds per step (default: no timeout)",
    )
    args = ap.parse_args(_argv(argv))
    try:
        layout = layout_from_args(args)
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    rc = run_build_script(env_from_args(args), layout=layout, timeout=args.timeout)
    sys.exit(rc)


def _location_dict(location: SharedLibraryLocation) -> dict[str, Any]:
    def s(p: Path | None) -> str | None:
        return str(p) if p is not None else None

    return {
        "lib_dir": s(location.lib_dir),
        "include_dir": s(location.include_dir),
        "cmake_config_dir": s(location.cmake_config_dir),
        "bin_dir": s(location.bin_dir),
        "basename": location.basename,
    }


def _inspect(args: argparse.Namespace, what: str) -> dict[str, Any]:
    env = env_from_args(args)
    env.setdefault("OUT_DIR", str(Path.cwd() / "target" / "whisper-build"))
    layout = layout_from_args(args)
    if layout is None:
        manifest = Path(env.get("CARGO_MANIFEST_DIR") or Path.cwd())
        layout = find_build_layout(manifest)
    cfg = resolve_build_layout(layout)
    inputs = BuildInputs.from_env(env, cfg)
    location, mode = resolve_mode(inputs, cfg)
    report: dict[str, Any] = {"mode": mode.value, "location": _location_dict(location)}
    if what == "locate":
        return report
    source = inputs.manifest_dir / cfg["source_dir"]
    headers = select_headers(mode, location, source, cfg)
    report["headers"] = [str(p) for p in headers]
    report["clang_args"] = clang_args(headers)
    if what == "headers":
        return report
    plan = build_plan(
        mode, location, inputs.features, inputs, inputs.out_dir / cfg["source_dir"], cfg
    )
    directive = emit_link_directive(
        mode,
        inputs.out_dir,
        inputs.features,
        location,
        target=inputs.target,
        system_libraries=plan.system_libraries,
        layout=cfg,
    )
    report["plan"] = plan.to_dict()
    report["link"] = directive.instructions()
    return report


def run_inspect_argv(what: str, argv: list[str] | None = None) -> None:
    """plan|locate|headers: print the decision as YAML without running cmake."""
    descriptions = {
        "plan": "Show mode, CMake plan and link directives without building",
        "locate": "Show the shared ggml location published by ggml-rs",
        "headers": "Show include dirs for the binding generator",
    }
    ap = argparse.ArgumentParser(prog=f"whisper-build {what}", description=descriptions[what])
    add_common_args(ap)
    args = ap.parse_args(_argv(argv))
    try:
        report = _inspect(args, what)
    except (ConfigurationError, BuildFailure) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    yaml.safe_dump(report, sys.stdout, default_flow_style=False, sort_keys=False)
    sys.exit(0)
