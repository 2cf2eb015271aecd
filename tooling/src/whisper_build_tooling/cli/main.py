"""Main CLI entry point for whisper-build."""

import logging
import sys

from whisper_build_tooling.cli import build as build_cli

USAGE = [
    "Usage: whisper-build [--verbose] <command> [args...]",
    "Commands:",
    "  run      - Configure, build and link whisper.cpp; print cargo instructions",
    "  plan     - Show mode, CMake definitions and link directives (no build)",
    "  locate   - Show the shared ggml location published by ggml-rs",
    "  headers  - Show include dirs for the binding generator",
]


def main() -> None:
    """Main CLI entry point."""
    argv = sys.argv[1:]
    verbose = "--verbose" in argv or "-v" in argv
    argv = [a for a in argv if a not in ("--verbose", "-v")]
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if not argv:
        for line in USAGE:
            print(line, file=sys.stderr)
        sys.exit(1)

    command, rest = argv[0], argv[1:]
    if command == "run":
        build_cli.run_build_argv(rest)
    elif command in ("plan", "locate", "headers"):
        build_cli.run_inspect_argv(command, rest)
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
