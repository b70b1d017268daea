"""Helpers that start binaries, build Go packages and run containers."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Sequence


class ProcessError(Exception):
    """Raised when an external command fails."""


def _run_combined(command: Sequence[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            list(command), stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
        )
    except OSError as exc:
        raise ProcessError(str(exc)) from exc


def _text(output) -> str:
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output or ""


def run_binary(bin_path: str, *args: str) -> Callable[[], int]:
    """Start ``bin_path`` with ``args`` in the background.

    Returns a function that kills the process and returns its exit code.
    """
    process = subprocess.Popen([os.path.abspath(bin_path), *args])

    def cancel() -> int:
        process.kill()
        return process.wait()

    return cancel


def build_go_source(package_path: str, output: str) -> Callable[[], None]:
    """Build a Go package into ``output``; the returned function deletes it."""
    result = _run_combined(["go", "build", "-o", output, package_path])
    if result.returncode != 0:
        raise ProcessError(
            f"unable to build package: exit status {result.returncode} ({_text(result.stdout)})"
        )

    def remove() -> None:
        os.remove(output)

    return remove


def run_container(
    image: str, docker_args: Sequence[str], runtime_args: Sequence[str]
) -> Callable[[], None]:
    """Launch a detached container; the returned function kills it."""
    command = ["docker", "run", "-d", *docker_args, image, *runtime_args]
    result = _run_combined(command)
    output = _text(result.stdout)
    if result.returncode != 0:
        raise ProcessError(f"exit status {result.returncode}: {output}")
    container_id = output.split("\n")[0]

    def kill() -> None:
        killed = _run_combined(["docker", "kill", container_id])
        if killed.returncode != 0:
            raise ProcessError(
                f"exit status {killed.returncode}: {_text(killed.stdout)}"
            )

    return kill