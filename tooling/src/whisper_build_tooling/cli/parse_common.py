"""Shared CLI arguments (--out-dir, --manifest-dir, --features, ...) and their env overlay.

The CLI works by overlaying cargo-style env keys on os.environ, so the pipeline sees the same
inputs it would get from a real cargo build script.
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping
from pathlib import Path

from whisper_build_tooling.config import load_build_layout
from whisper_build_tooling.errors import ConfigurationError
from whisper_build_tooling.helpers import feature_env_key


def path_resolver(s: str) -> Path:
    """Resolve a path argument to absolute Path (e.g. --out-dir, --manifest-dir)."""
    return Path(s).resolve()


def split_features(s: str) -> list[str]:
    """Comma or space separated feature list -> names."""
    return [f for f in s.replace(",", " ").split() if f]


def add_common_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--out-dir", type=path_resolver, help="Build output dir (default: $OUT_DIR)")
    ap.add_argument(
        "--manifest-dir",
        type=path_resolver,
        help="Crate dir holding whisper.cpp/ (default: $CARGO_MANIFEST_DIR or cwd)",
    )
    ap.add_argument(
        "--features",
        type=split_features,
        default=[],
        help="Cargo features, comma separated (e.g. use-shared-ggml,cuda)",
    )
    ap.add_argument(
        "--shared",
        action="store_true",
        help="Link against the shared ggml (same as --features use-shared-ggml)",
    )
    ap.add_argument("--debug", action="store_true", help="Debug profile (RelWithDebInfo)")
    ap.add_argument("--target", default=None, help="Target triple (default: $TARGET or host)")
    ap.add_argument(
        "--config",
        type=path_resolver,
        default=None,
        help="Layout override YAML (default: <manifest-dir>/whisper-build.yaml)",
    )


def env_from_args(args: argparse.Namespace, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """base env (default os.environ) with CLI flags written over it as cargo keys."""
    env = dict(os.environ if base is None else base)
    if args.out_dir is not None:
        env["OUT_DIR"] = str(args.out_dir)
    if args.manifest_dir is not None:
        env["CARGO_MANIFEST_DIR"] = str(args.manifest_dir)
    features = list(args.features)
    if args.shared:
        features.append("use-shared-ggml")
    for f in features:
        env[feature_env_key(f)] = "1"
    if args.debug:
        env["PROFILE"] = "debug"
    if args.target:
        env["TARGET"] = args.target
    return env


def layout_from_args(args: argparse.Namespace) -> dict | None:
    """Layout from --config, or None to let the pipeline find whisper-build.yaml itself."""
    if args.config is None:
        return None
    if not args.config.is_file():
        msg = f"config file not found: {args.config}"
        raise ConfigurationError(msg)
    return load_build_layout(args.config)
