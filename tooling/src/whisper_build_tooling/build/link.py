"""Linker search paths and libraries for cargo, in single-pass linker order."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from whisper_build_tooling.build.locator import SharedLibraryLocation
from whisper_build_tooling.build.mode import BuildMode
from whisper_build_tooling.build.target import TargetPlatform, resolve_target
from whisper_build_tooling.config import resolve_build_layout
from whisper_build_tooling.helpers import dedupe

# ggml modules every shared build links, as suffixes of the published basename
CORE_MODULE_SUFFIXES = ("", "-base", "-cpu")


class LinkKind(str, Enum):
    STATIC = "static"
    DYNAMIC = "dylib"


@dataclass(frozen=True)
class LinkLibrary:
    kind: LinkKind
    name: str

    def instruction(self) -> str:
        return f"cargo:rustc-link-lib={self.kind.value}={self.name}"


@dataclass(frozen=True)
class LinkDirective:
    search_paths: tuple[Path, ...] = ()
    libraries: tuple[LinkLibrary, ...] = ()

    def names(self, kind: LinkKind | None = None) -> list[str]:
        return [lib.name for lib in self.libraries if kind is None or lib.kind is kind]

    def instructions(self) -> list[str]:
        """Search paths first, then libraries, one cargo instruction each."""
        lines = [f"cargo:rustc-link-search=native={p}" for p in self.search_paths]
        lines.extend(lib.instruction() for lib in self.libraries)
        return lines


def backend_library_suffixes(
    features: Iterable[str],
    target: TargetPlatform,
    backend_libraries: dict[str, str],
) -> list[str]:
    """Backend suffixes to link, once each, in backend_libraries order.

    Apple targets always get blas (Accelerate) whether or not openblas was requested.
    """
    enabled = set(features)
    suffixes = [suffix for name, suffix in backend_libraries.items() if name in enabled]
    if target.is_apple:
        suffixes.append("blas")
    return dedupe(suffixes)


def emit_link_directive(
    mode: BuildMode,
    artifact_path: Path,
    features: Iterable[str],
    location: SharedLibraryLocation,
    *,
    target: TargetPlatform | None = None,
    system_libraries: Iterable[str] = (),
    extra_search_paths: Iterable[Path] = (),
    layout: dict[str, Any] | None = None,
) -> LinkDirective:
    """LinkDirective for mode.

    Embedded: whisper statically, ggml is already inside it. Shared: the published lib dir,
    then ggml core and backend dylibs, then whisper. Platform system libraries come last.
    """
    cfg = resolve_build_layout(layout)
    target = target if target is not None else resolve_target(None)
    library_name = cfg["library_name"]

    search = [artifact_path, artifact_path / "lib", *extra_search_paths]
    libs: list[LinkLibrary] = []

    if mode is BuildMode.SHARED_LINK:
        if location.lib_dir is not None:
            search.append(location.lib_dir)
        base = location.basename
        libs.extend(LinkLibrary(LinkKind.DYNAMIC, f"{base}{s}") for s in CORE_MODULE_SUFFIXES)
        libs.extend(
            LinkLibrary(LinkKind.DYNAMIC, f"{base}-{s}")
            for s in backend_library_suffixes(features, target, cfg["backend_libraries"])
        )
    libs.append(LinkLibrary(LinkKind.STATIC, library_name))

    system = []
    cpp = target.cpp_stdlib()
    if cpp is not None:
        system.append(cpp)
    system.extend(system_libraries)
    libs.extend(LinkLibrary(LinkKind.DYNAMIC, name) for name in dedupe(system))

    return LinkDirective(search_paths=tuple(dedupe(search)), libraries=tuple(dedupe(libs)))
