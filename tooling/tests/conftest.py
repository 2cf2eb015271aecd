"""Pytest fixtures for whisper-build tooling tests."""

from pathlib import Path

import pytest

LINUX = "x86_64-unknown-linux-gnu"


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    """Crate dir with a minimal bundled whisper.cpp tree."""
    crate = tmp_path / "whisper-rs-sys"
    src = crate / "whisper.cpp"
    (src / "ggml" / "include").mkdir(parents=True)
    (src / "include").mkdir()
    (src / "CMakeLists.txt").write_text(
        'cmake_minimum_required(VERSION 3.5)\nproject("whisper.cpp" VERSION 1.7.5)\n'
    )
    (src / "include" / "whisper.h").write_text("/* whisper */\n")
    (src / "ggml" / "include" / "ggml.h").write_text("/* ggml */\n")
    return crate


@pytest.fixture
def ggml_prefix(tmp_path: Path) -> Path:
    """Fake ggml-rs install prefix: lib/, include/, lib/cmake/ggml/."""
    prefix = tmp_path / "ggml-install"
    (prefix / "lib" / "cmake" / "ggml").mkdir(parents=True)
    (prefix / "include").mkdir()
    return prefix


@pytest.fixture
def cargo_env(tmp_path: Path, manifest_dir: Path) -> dict[str, str]:
    """Env a cargo build script would see (release, linux, no features)."""
    out = tmp_path / "target" / "release" / "build" / "whisper-rs-sys-abc123" / "out"
    out.mkdir(parents=True)
    return {
        "OUT_DIR": str(out),
        "CARGO_MANIFEST_DIR": str(manifest_dir),
        "TARGET": LINUX,
        "PROFILE": "release",
    }


@pytest.fixture
def shared_env(cargo_env: dict[str, str], ggml_prefix: Path) -> dict[str, str]:
    """cargo_env with use-shared-ggml enabled and ggml-rs metadata exported."""
    env = dict(cargo_env)
    env["CARGO_FEATURE_USE_SHARED_GGML"] = "1"
    env["DEP_GGML_RS_GGML_WHISPER_LIB_DIR"] = str(ggml_prefix / "lib")
    env["DEP_GGML_RS_GGML_WHISPER_BASENAME"] = "ggml_whisper"
    return env
