"""Error kinds raised by the orchestrator. Both are fatal; run() turns them into exit code 1."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid or incomplete build configuration, detected before any native build starts."""


class BuildFailure(RuntimeError):
    """The native build tool failed. ``output`` holds its captured output verbatim."""

    def __init__(self, message: str, output: str = "", returncode: int | None = None) -> None:
        self.output = output
        self.returncode = returncode
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)
