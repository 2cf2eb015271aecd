"""Embedded vs shared ggml: the one decision every later step branches on."""

from __future__ import annotations

from enum import Enum

from whisper_build_tooling.build.locator import SharedLibraryLocation
from whisper_build_tooling.errors import ConfigurationError


class BuildMode(str, Enum):
    EMBEDDED_BUILD = "embedded"
    SHARED_LINK = "shared"


def select_mode(
    requested_shared: bool,
    location: SharedLibraryLocation,
    lib_dir_key: str = "DEP_GGML_RS_GGML_WHISPER_LIB_DIR",
) -> BuildMode:
    """EMBEDDED_BUILD unless shared was requested; shared without a published lib dir is an error.

    Never falls back to embedded: that would link a second copy of ggml.
    """
    if not requested_shared:
        return BuildMode.EMBEDDED_BUILD
    if location.lib_dir is None:
        msg = (
            "shared mode requested but no shared library location was published: "
            f"{lib_dir_key} is not set. Make sure ggml-rs is a build dependency and "
            "its build script exports it."
        )
        raise ConfigurationError(msg)
    return BuildMode.SHARED_LINK
