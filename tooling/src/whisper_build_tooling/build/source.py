"""Make the bundled whisper.cpp source available and stage a copy in the output dir."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from whisper_build_tooling.errors import BuildFailure, ConfigurationError
from whisper_build_tooling.helpers import dir_has_contents, read_cmake_project_version

log = logging.getLogger(__name__)


def _init_submodule(manifest_dir: Path, source_name: str) -> bool:
    try:
        r = subprocess.run(
            ["git", "submodule", "update", "--init", "--recursive", source_name],
            cwd=str(manifest_dir),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        log.debug("git not in PATH: %s", e)
        return False
    if r.returncode != 0:
        log.debug("git submodule update failed: %s", (r.stderr or r.stdout)[:200])
        return False
    return dir_has_contents(manifest_dir / source_name)


def _clone(repo_url: str, dest: Path, scratch: Path) -> None:
    if scratch.exists():
        shutil.rmtree(scratch, ignore_errors=True)
    try:
        r = subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, str(scratch)],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        msg = "Failed to run git clone; please ensure git is installed"
        raise BuildFailure(msg, output=str(e)) from e
    if r.returncode != 0:
        msg = f"Failed to download {repo_url}; check that git works and you have network access"
        raise BuildFailure(msg, output=r.stderr or r.stdout, returncode=r.returncode)
    try:
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        # move falls back to copy+delete across filesystems
        shutil.move(str(scratch), str(dest))
    except OSError as e:
        msg = f"Failed to move cloned source from {scratch} to {dest}: {e}"
        raise BuildFailure(msg) from e


def ensure_source_tree(
    manifest_dir: Path,
    source_name: str,
    repo_url: str,
    scratch_dir: Path,
) -> tuple[Path, list[str]]:
    """Return (source_dir, notes). Tries the git submodule first, then a shallow clone.

    notes are human-readable status lines for the caller to surface as cargo warnings.
    """
    source = manifest_dir / source_name
    if dir_has_contents(source):
        return source, []
    notes = [f"{source_name} not found, downloading from GitHub..."]
    if _init_submodule(manifest_dir, source_name):
        notes.append(f"Successfully initialized {source_name} submodule")
        return source, notes
    notes.append(f"Submodule init failed, cloning {source_name} directly...")
    _clone(repo_url, source, scratch_dir / f"{source_name}-temp")
    notes.append(f"Successfully downloaded {source_name}")
    return source, notes


def stage_source(source: Path, staged: Path) -> Path:
    """Copy source to staged unless staged already has a CMakeLists.txt. Returns staged."""
    if (staged / "CMakeLists.txt").exists():
        return staged
    if staged.exists():
        shutil.rmtree(staged, ignore_errors=True)
    try:
        shutil.copytree(source, staged, symlinks=True)
    except OSError as e:
        msg = f"Failed to copy {source} to {staged}: {e}"
        raise BuildFailure(msg) from e
    if not (staged / "CMakeLists.txt").exists():
        msg = f"CMakeLists.txt not found in {staged} after copy. Source: {source}"
        raise ConfigurationError(msg)
    return staged


def source_version(source: Path) -> str:
    """whisper.cpp version declared in source/CMakeLists.txt."""
    cmake_lists = source / "CMakeLists.txt"
    try:
        version = read_cmake_project_version(cmake_lists)
    except OSError as e:
        msg = f"Failed to read {cmake_lists}: {e}"
        raise ConfigurationError(msg) from e
    if version is None:
        msg = f"Could not find whisper.cpp version declaration in {cmake_lists}"
        raise ConfigurationError(msg)
    return version
