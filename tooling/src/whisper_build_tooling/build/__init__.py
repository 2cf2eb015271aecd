"""Embedded/shared ggml build pipeline for whisper.cpp (locator, mode, plan, executor, link, headers)."""

from .executor import execute
from .headers import select_headers
from .inputs import BuildInputs, filter_passthrough
from .link import LinkDirective, LinkKind, LinkLibrary, emit_link_directive
from .locator import SharedLibraryLocation, locate_shared_library
from .mode import BuildMode, select_mode
from .orchestrator import BuildResult, run_pipeline
from .orchestrator import run as run_build_script
from .plan import NativeBuildPlan, build_plan
from .target import TargetPlatform, resolve_target

__all__ = [
    "BuildInputs",
    "BuildMode",
    "BuildResult",
    "LinkDirective",
    "LinkKind",
    "LinkLibrary",
    "NativeBuildPlan",
    "SharedLibraryLocation",
    "TargetPlatform",
    "build_plan",
    "emit_link_directive",
    "execute",
    "filter_passthrough",
    "locate_shared_library",
    "resolve_target",
    "run_build_script",
    "run_pipeline",
    "select_headers",
    "select_mode",
]
