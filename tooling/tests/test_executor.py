"""Tests for whisper_build_tooling.build.executor (subprocess.run mocked)."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from whisper_build_tooling.build.plan import NativeBuildPlan
from whisper_build_tooling.errors import BuildFailure


def _plan(tmp_path: Path, **kw) -> NativeBuildPlan:
    kw.setdefault("definitions", {"BUILD_SHARED_LIBS": "OFF", "CMAKE_BUILD_TYPE": "Release"})
    return NativeBuildPlan(source_dir=tmp_path / "whisper.cpp", **kw)


class TestExecute:
    def test_configure_then_build_install(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        out = tmp_path / "out"
        with patch("whisper_build_tooling.build.executor.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")
            artifact = execute(_plan(tmp_path), out)
        assert artifact == out
        assert (out / "build").is_dir()
        assert run.call_count == 2
        configure = run.call_args_list[0][0][0]
        build = run.call_args_list[1][0][0]
        assert configure[:5] == ["cmake", "-S", str(tmp_path / "whisper.cpp"), "-B", str(out / "build")]
        assert "-DBUILD_SHARED_LIBS=OFF" in configure
        assert f"-DCMAKE_INSTALL_PREFIX={out.as_posix()}" in configure
        assert build[:3] == ["cmake", "--build", str(out / "build")]
        assert "install" in build
        assert build[build.index("--config") + 1] == "Release"

    def test_nonzero_exit_raises_with_raw_output(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        with patch("whisper_build_tooling.build.executor.subprocess.run") as run:
            run.return_value = MagicMock(
                returncode=1,
                stdout="-- Looking for ggml\n",
                stderr="CMake Error: Could not find a package configuration file provided by \"ggml\"\n",
            )
            with pytest.raises(BuildFailure) as exc:
                execute(_plan(tmp_path), tmp_path / "out")
        assert exc.value.returncode == 1
        assert 'provided by "ggml"' in exc.value.output
        assert "Looking for ggml" in str(exc.value)
        # configure failed; build step never ran
        assert run.call_count == 1

    def test_no_retry_on_build_failure(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        results = [
            MagicMock(returncode=0, stdout="", stderr=""),
            MagicMock(returncode=2, stdout="", stderr="make: *** [all] Error 2"),
        ]
        with patch("whisper_build_tooling.build.executor.subprocess.run", side_effect=results) as run:
            with pytest.raises(BuildFailure, match="build failed"):
                execute(_plan(tmp_path), tmp_path / "out")
        assert run.call_count == 2

    def test_timeout_becomes_build_failure(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        err = subprocess.TimeoutExpired(cmd=["cmake"], timeout=5, output=b"partial", stderr=None)
        with patch("whisper_build_tooling.build.executor.subprocess.run", side_effect=err) as run:
            with pytest.raises(BuildFailure, match="timed out") as exc:
                execute(_plan(tmp_path), tmp_path / "out", timeout=5)
        assert exc.value.output == "partial"
        assert run.call_args[1]["timeout"] == 5

    def test_missing_cmake(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        with patch(
            "whisper_build_tooling.build.executor.subprocess.run",
            side_effect=FileNotFoundError("cmake"),
        ):
            with pytest.raises(BuildFailure, match="not found"):
                execute(_plan(tmp_path), tmp_path / "out")

    def test_default_has_no_timeout(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        with patch("whisper_build_tooling.build.executor.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            execute(_plan(tmp_path), tmp_path / "out")
        assert run.call_args[1]["timeout"] is None


class TestConfigureCommand:
    def test_compiler_flags_become_cmake_flags(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import configure_command

        plan = _plan(
            tmp_path,
            definitions={"CMAKE_CXX_FLAGS": "-O2"},
            compiler_flags=("/utf-8", "-DWHISPER_DEBUG"),
        )
        cmd = configure_command(plan, tmp_path / "b", tmp_path / "i")
        assert "-DCMAKE_CXX_FLAGS=-O2 /utf-8 -DWHISPER_DEBUG" in cmd
        assert "-DCMAKE_C_FLAGS=/utf-8 -DWHISPER_DEBUG" in cmd

    def test_no_flag_definitions_without_compiler_flags(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import configure_command

        cmd = configure_command(_plan(tmp_path), tmp_path / "b", tmp_path / "i")
        assert not any(a.startswith("-DCMAKE_CXX_FLAGS") for a in cmd)

    def test_passthrough_install_prefix_kept(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import configure_command

        plan = _plan(tmp_path, definitions={"CMAKE_INSTALL_PREFIX": "/custom"})
        cmd = configure_command(plan, tmp_path / "b", tmp_path / "i")
        assert "-DCMAKE_INSTALL_PREFIX=/custom" in cmd

    def test_include_dirs_reach_compiler_flags(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import configure_command

        plan = _plan(tmp_path, include_dirs=(Path("/opt/foo/include"),), compiler_flags=("/utf-8",))
        cmd = configure_command(plan, tmp_path / "b", tmp_path / "i")
        assert "-DCMAKE_C_FLAGS=/utf-8 -I/opt/foo/include" in cmd
        assert "-DCMAKE_CXX_FLAGS=/utf-8 -I/opt/foo/include" in cmd


class TestInstallPrefix:
    def test_custom_prefix_is_the_artifact(self, tmp_path: Path) -> None:
        from whisper_build_tooling.build.executor import execute

        custom = tmp_path / "custom"
        plan = _plan(tmp_path, definitions={"CMAKE_INSTALL_PREFIX": custom.as_posix()})
        with patch("whisper_build_tooling.build.executor.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            artifact = execute(plan, tmp_path / "out")
        assert artifact == custom
        assert (tmp_path / "out" / "build").is_dir()
        configure = run.call_args_list[0][0][0]
        assert f"-DCMAKE_INSTALL_PREFIX={custom.as_posix()}" in configure
