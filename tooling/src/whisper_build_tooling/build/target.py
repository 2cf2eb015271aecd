"""Target triple facts used by the plan builder and link emitter."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass

# host (sys.platform, machine) -> rust triple, used when TARGET is not set
HOST_TRIPLES: dict[tuple[str, str], str] = {
    ("linux", "x86_64"): "x86_64-unknown-linux-gnu",
    ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
    ("darwin", "x86_64"): "x86_64-apple-darwin",
    ("darwin", "arm64"): "aarch64-apple-darwin",
    ("win32", "amd64"): "x86_64-pc-windows-msvc",
    ("win32", "arm64"): "aarch64-pc-windows-msvc",
}


@dataclass(frozen=True)
class TargetPlatform:
    triple: str

    @property
    def is_windows(self) -> bool:
        return "windows" in self.triple

    @property
    def is_apple(self) -> bool:
        return "apple" in self.triple

    @property
    def is_macos(self) -> bool:
        return self.is_apple and "darwin" in self.triple

    @property
    def is_msvc(self) -> bool:
        return "msvc" in self.triple

    def cpp_stdlib(self) -> str | None:
        """C++ standard library to link for this target (None on msvc, which links it implicitly)."""
        t = self.triple
        if self.is_msvc:
            return None
        if "apple" in t or "freebsd" in t or "openbsd" in t:
            return "c++"
        if "android" in t:
            return "c++_shared"
        return "stdc++"

    def static_library_file(self, name: str) -> str:
        """File name of a static library: name.lib on Windows, libname.a elsewhere."""
        return f"{name}.lib" if self.is_windows else f"lib{name}.a"


def detect_host_triple() -> str:
    """Best-effort triple for the running host; falls back to x86_64 linux gnu."""
    key = (sys.platform, platform.machine().lower())
    return HOST_TRIPLES.get(key, "x86_64-unknown-linux-gnu")


def resolve_target(triple: str | None) -> TargetPlatform:
    """TargetPlatform for triple, or for the host when triple is empty."""
    return TargetPlatform(triple or detect_host_triple())
