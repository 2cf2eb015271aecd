"""Run CMake configure/build/install for a NativeBuildPlan.

No retries: a second run with the same configuration fails the same way.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from whisper_build_tooling.build.plan import NativeBuildPlan
from whisper_build_tooling.errors import BuildFailure

log = logging.getLogger(__name__)

CMAKE = "cmake"


def _flag_definitions(plan: NativeBuildPlan) -> dict[str, str]:
    """CMAKE_C_FLAGS/CMAKE_CXX_FLAGS with compiler flags and -I dirs appended to any set value."""
    flags = [*plan.compiler_flags, *(f"-I{p.as_posix()}" for p in plan.include_dirs)]
    if not flags:
        return {}
    extra = " ".join(flags)
    out: dict[str, str] = {}
    for key in ("CMAKE_C_FLAGS", "CMAKE_CXX_FLAGS"):
        current = plan.definitions.get(key, "")
        out[key] = f"{current} {extra}".strip()
    return out


def configure_command(plan: NativeBuildPlan, build_dir: Path, install_dir: Path) -> list[str]:
    definitions = dict(plan.definitions)
    definitions.update(_flag_definitions(plan))
    definitions.setdefault("CMAKE_INSTALL_PREFIX", install_dir.as_posix())
    cmd = [CMAKE, "-S", str(plan.source_dir), "-B", str(build_dir)]
    cmd.extend(f"-D{k}={v}" for k, v in definitions.items())
    return cmd


def build_command(plan: NativeBuildPlan, build_dir: Path) -> list[str]:
    return [
        CMAKE,
        "--build",
        str(build_dir),
        "--config",
        plan.profile,
        "--target",
        "install",
        "--verbose",
    ]


def _run_step(cmd: list[str], step: str, timeout: float | None) -> str:
    log.debug("Running %s", " ".join(cmd))
    try:
        r = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        msg = f"cmake {step} failed: {CMAKE} not found in PATH"
        raise BuildFailure(msg, output=str(e)) from e
    except subprocess.TimeoutExpired as e:
        output = _decode(e.stdout) + _decode(e.stderr)
        msg = f"cmake {step} timed out after {timeout}s; partial build output is not usable"
        raise BuildFailure(msg, output=output) from e
    output = (r.stdout or "") + (r.stderr or "")
    if r.returncode != 0:
        msg = f"cmake {step} failed with exit code {r.returncode}"
        raise BuildFailure(msg, output=output, returncode=r.returncode)
    return output


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data


def execute(plan: NativeBuildPlan, out_dir: Path, timeout: float | None = None) -> Path:
    """Configure and build in out_dir/build, then install. Returns the install prefix.

    The prefix is out_dir unless the plan defines CMAKE_INSTALL_PREFIX.

    timeout (seconds) applies to each cmake step; on expiry the tool is killed and
    BuildFailure is raised. Default is no timeout.
    """
    build_dir = out_dir / "build"
    build_dir.mkdir(parents=True, exist_ok=True)
    # a passthrough CMAKE_INSTALL_PREFIX moves the install, and the artifact with it
    prefix = plan.definitions.get("CMAKE_INSTALL_PREFIX")
    install_dir = Path(prefix) if prefix else out_dir
    _run_step(configure_command(plan, build_dir, install_dir), "configure", timeout)
    _run_step(build_command(plan, build_dir), "build", timeout)
    log.debug("Installed %s into %s", plan.source_dir.name, install_dir)
    return install_dir
