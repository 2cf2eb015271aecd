"""Include directories for the binding generator, consistent with the build mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from whisper_build_tooling.build.locator import SharedLibraryLocation
from whisper_build_tooling.build.mode import BuildMode
from whisper_build_tooling.config import resolve_build_layout
from whisper_build_tooling.errors import ConfigurationError


def select_headers(
    mode: BuildMode,
    location: SharedLibraryLocation,
    source_dir: Path,
    layout: dict[str, Any] | None = None,
) -> tuple[Path, ...]:
    """ggml headers first (bundled or published, never both), then whisper's own.

    whisper.h includes ggml.h, so the ggml dir must come first.
    """
    cfg = resolve_build_layout(layout)
    if mode is BuildMode.SHARED_LINK:
        if location.include_dir is None:
            msg = (
                "shared mode requires the ggml include dir: set one of "
                + ", ".join(cfg["include_keys"])
                + f" or {cfg['lib_dir_key']}"
            )
            raise ConfigurationError(msg)
        ggml_dir = location.include_dir
    else:
        ggml_dir = source_dir / cfg["bundled_headers"]
    return (ggml_dir, source_dir, source_dir / "include")


def clang_args(headers: tuple[Path, ...]) -> list[str]:
    """-I arguments for the binding generator."""
    return [f"-I{p}" for p in headers]
