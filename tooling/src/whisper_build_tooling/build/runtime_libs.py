"""Copy the namespaced ggml DLLs next to the final binaries on Windows shared builds."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from whisper_build_tooling.errors import BuildFailure

log = logging.getLogger(__name__)

RUNTIME_SUFFIXES = ("", "-base", "-cpu", "-cuda", "-vulkan", "-metal", "-hip", "-blas", "-sycl")


def profile_dir_from_out_dir(out_dir: Path) -> Path | None:
    """target/<profile> for a cargo OUT_DIR (target/<profile>/build/<pkg>-<hash>/out)."""
    parents = out_dir.parents
    if len(parents) < 3:
        return None
    return parents[2]


def copy_runtime_libraries(dll_dir: Path, basename: str, dest_dir: Path) -> list[str]:
    """Copy <basename><suffix>.dll files that exist in dll_dir into dest_dir. Returns copied names."""
    copied: list[str] = []
    for suffix in RUNTIME_SUFFIXES:
        name = f"{basename}{suffix}.dll"
        src = dll_dir / name
        if not src.exists():
            continue
        try:
            shutil.copy2(src, dest_dir / name)
        except OSError as e:
            msg = f"Failed to copy {src} to {dest_dir}: {e}"
            raise BuildFailure(msg) from e
        log.debug("Copied %s", name)
        copied.append(name)
    return copied
