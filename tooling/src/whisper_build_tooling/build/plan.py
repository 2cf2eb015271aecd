"""Assemble the CMake configuration for whisper.cpp in embedded or shared ggml mode.

The plan is built incrementally by PlanBuilder and frozen by build(); the executor only reads it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from whisper_build_tooling.build.inputs import BuildInputs, filter_passthrough
from whisper_build_tooling.build.locator import SharedLibraryLocation
from whisper_build_tooling.build.mode import BuildMode
from whisper_build_tooling.config import resolve_build_layout
from whisper_build_tooling.errors import ConfigurationError
from whisper_build_tooling.helpers import format_cmake_value

log = logging.getLogger(__name__)

DEBUG_BUILD_TYPE = "RelWithDebInfo"
RELEASE_BUILD_TYPE = "Release"

BASE_DEFINITIONS: dict[str, str] = {
    "BUILD_SHARED_LIBS": "OFF",
    "WHISPER_ALL_WARNINGS": "OFF",
    "WHISPER_ALL_WARNINGS_3RD_PARTY": "OFF",
    "WHISPER_BUILD_TESTS": "OFF",
    "WHISPER_BUILD_EXAMPLES": "OFF",
    "CMAKE_POSITION_INDEPENDENT_CODE": "ON",
}


@dataclass(frozen=True)
class NativeBuildPlan:
    source_dir: Path
    definitions: Mapping[str, str] = field(default_factory=dict)
    compiler_flags: tuple[str, ...] = ()
    include_dirs: tuple[Path, ...] = ()
    system_libraries: tuple[str, ...] = ()
    profile: str = RELEASE_BUILD_TYPE

    def define_args(self) -> list[str]:
        """-DKEY=VALUE arguments in definition order."""
        return [f"-D{k}={v}" for k, v in self.definitions.items()]

    def to_dict(self) -> dict[str, Any]:
        """Plain data (for YAML output)."""
        return {
            "source_dir": str(self.source_dir),
            "profile": self.profile,
            "definitions": dict(self.definitions),
            "compiler_flags": list(self.compiler_flags),
            "include_dirs": [str(p) for p in self.include_dirs],
            "system_libraries": list(self.system_libraries),
        }


class PlanBuilder:
    """Mutable accumulator for a NativeBuildPlan."""

    def __init__(self, source_dir: Path) -> None:
        self.source_dir = source_dir
        self.definitions: dict[str, str] = {}
        self.compiler_flags: list[str] = []
        self.include_dirs: list[Path] = []
        self.system_libraries: list[str] = []
        self.profile = RELEASE_BUILD_TYPE

    def define(self, key: str, value: object) -> PlanBuilder:
        self.definitions[key] = format_cmake_value(value)
        return self

    def cxxflag(self, flag: str) -> PlanBuilder:
        if flag not in self.compiler_flags:
            self.compiler_flags.append(flag)
        return self

    def include(self, path: Path) -> PlanBuilder:
        if path not in self.include_dirs:
            self.include_dirs.append(path)
        return self

    def link_system(self, name: str) -> PlanBuilder:
        if name not in self.system_libraries:
            self.system_libraries.append(name)
        return self

    def build(self) -> NativeBuildPlan:
        return NativeBuildPlan(
            source_dir=self.source_dir,
            definitions=MappingProxyType(dict(self.definitions)),
            compiler_flags=tuple(self.compiler_flags),
            include_dirs=tuple(self.include_dirs),
            system_libraries=tuple(self.system_libraries),
            profile=self.profile,
        )


# --- Features ---


def _apply_coreml(b: PlanBuilder, inputs: BuildInputs) -> None:
    b.define("WHISPER_COREML", "ON")
    b.define("WHISPER_COREML_ALLOW_FALLBACK", "1")


def _apply_cuda(b: PlanBuilder, inputs: BuildInputs) -> None:
    b.define("GGML_CUDA", "ON")
    b.define("CMAKE_CUDA_FLAGS", "-Xcompiler=-fPIC")


def _apply_hipblas(b: PlanBuilder, inputs: BuildInputs) -> None:
    if inputs.target.is_windows:
        msg = (
            "hipblas is not supported on Windows targets: the ROCm 5.7 release does not build "
            "there (see https://github.com/ggerganov/whisper.cpp/issues/2202)"
        )
        raise ConfigurationError(msg)
    b.define("GGML_HIP", "ON")
    b.define("CMAKE_C_COMPILER", "hipcc")
    b.define("CMAKE_CXX_COMPILER", "hipcc")
    gpu_targets = inputs.feature_env.get("AMDGPU_TARGETS")
    if gpu_targets:
        b.define("AMDGPU_TARGETS", gpu_targets)


def _apply_vulkan(b: PlanBuilder, inputs: BuildInputs) -> None:
    if (inputs.target.is_windows or inputs.target.is_macos) and not inputs.feature_env.get(
        "VULKAN_SDK"
    ):
        msg = "vulkan feature requires VULKAN_SDK to point at an installed Vulkan SDK"
        raise ConfigurationError(msg)
    b.define("GGML_VULKAN", "ON")


def _apply_openblas(b: PlanBuilder, inputs: BuildInputs) -> None:
    blas_include = inputs.feature_env.get("BLAS_INCLUDE_DIRS")
    if not blas_include:
        msg = "BLAS_INCLUDE_DIRS must be set when using the openblas feature"
        raise ConfigurationError(msg)
    b.define("GGML_BLAS", "ON")
    b.define("GGML_BLAS_VENDOR", "OpenBLAS")
    b.define("BLAS_INCLUDE_DIRS", blas_include)


def _apply_metal(b: PlanBuilder, inputs: BuildInputs) -> None:
    b.define("GGML_METAL", "ON")
    b.define("GGML_METAL_NDEBUG", "ON")
    b.define("GGML_METAL_EMBED_LIBRARY", "ON")


def _apply_intel_sycl(b: PlanBuilder, inputs: BuildInputs) -> None:
    b.define("GGML_SYCL", "ON")
    b.define("GGML_SYCL_TARGET", "INTEL")
    b.define("CMAKE_C_COMPILER", "icx")
    b.define("CMAKE_CXX_COMPILER", "icpx")


FEATURE_SWITCHES = {
    "coreml": _apply_coreml,
    "cuda": _apply_cuda,
    "hipblas": _apply_hipblas,
    "vulkan": _apply_vulkan,
    "openblas": _apply_openblas,
    "metal": _apply_metal,
    "intel-sycl": _apply_intel_sycl,
}


def _apply_features(b: PlanBuilder, features: frozenset[str], inputs: BuildInputs) -> None:
    for name, apply in FEATURE_SWITCHES.items():
        if name in features:
            apply(b, inputs)
    # metal is on by default upstream; openmp likewise
    if "metal" not in features:
        b.define("GGML_METAL", "OFF")
    if "openmp" not in features:
        b.define("GGML_OPENMP", "OFF")


# --- Modes ---


def _apply_shared_link(
    b: PlanBuilder,
    location: SharedLibraryLocation,
    inputs: BuildInputs,
    cfg: dict[str, Any],
) -> None:
    b.define(cfg["mode_control_key"], "ON")
    prefix = location.prefix
    if prefix is not None:
        b.define("CMAKE_PREFIX_PATH", prefix)
        # ggml_DIR pins the package when several installs share one prefix root
        if location.cmake_config_dir is not None and location.cmake_config_dir.is_dir():
            b.define(f"{cfg['cmake_package']}_DIR", location.cmake_config_dir)
        else:
            log.debug("No CMake package dir at %s", location.cmake_config_dir)
    if location.include_dir is not None:
        b.define("GGML_INCLUDE_DIR", location.include_dir)
        b.include(location.include_dir)
    if location.lib_dir is not None:
        lib_file = location.lib_dir / inputs.target.static_library_file(location.basename)
        if lib_file.exists():
            b.define("GGML_LIBRARY", lib_file)
        else:
            log.debug("%s not found, falling back to GGML_LIB_DIR", lib_file)
            b.define("GGML_LIB_DIR", location.lib_dir)


def build_plan(
    mode: BuildMode,
    location: SharedLibraryLocation,
    features: frozenset[str],
    inputs: BuildInputs,
    source_dir: Path,
    layout: dict[str, Any] | None = None,
) -> NativeBuildPlan:
    """NativeBuildPlan for mode. Passthrough flags go last and win, except reserved keys."""
    cfg = resolve_build_layout(layout)
    b = PlanBuilder(source_dir)
    for key, value in BASE_DEFINITIONS.items():
        b.define(key, value)

    if mode is BuildMode.SHARED_LINK:
        _apply_shared_link(b, location, inputs, cfg)

    if inputs.target.is_windows:
        b.cxxflag("/utf-8")
        b.link_system("advapi32")

    _apply_features(b, features, inputs)

    if inputs.debug:
        b.profile = DEBUG_BUILD_TYPE
        b.cxxflag("-DWHISPER_DEBUG")
    else:
        b.profile = RELEASE_BUILD_TYPE
    b.define("CMAKE_BUILD_TYPE", b.profile)

    reserved = [*cfg["reserved_keys"], cfg["mode_control_key"]]
    for key, value in filter_passthrough(
        inputs.passthrough, cfg["passthrough_prefixes"], reserved
    ).items():
        b.define(key, value)
    # the build step must use the configuration that was actually configured
    b.profile = b.definitions["CMAKE_BUILD_TYPE"]
    return b.build()
