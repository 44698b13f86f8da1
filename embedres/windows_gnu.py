"""Resource compilation with windres on a Windows GNU host."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any

from .params import apply_parameters
from .result import CompilationError, CompilationResult

# SDK tools are not looked for on the GNU toolchain, so there is nowhere to look.
_SDK_TOOL_DIRS: tuple[Path, ...] = ()


def _describe_status(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status: {returncode}"


def windres_target() -> str:
    """The ``--target`` to hand windres.

    ``$MINGW_CHOST`` wins where set (some msys2 environments); otherwise it follows ``$TARGET``.
    """
    chost = os.environ.get("MINGW_CHOST")
    if chost is not None:
        return chost
    target = os.environ.get("TARGET")
    if target is None:
        raise RuntimeError("No TARGET env var")
    if target.startswith("x86_64"):
        return "pe-x86-64"
    if target.startswith("aarch64"):
        return "pe-aarch64-little"
    return "pe-i386"


class ResourceCompiler:
    """windres-based resource compiler; always available."""

    def __init__(self) -> None:
        # windres is assumed present; a missing one shows up when compiling.
        self._missing: str | None = None

    def is_supported(self) -> str | None:
        """What is missing to compile resources; ``None`` since windres is assumed present."""
        return self._missing

    def compile_resource(self, out_dir: str, prefix: str, resource: str, parameters: Any) -> str:
        """Compile ``resource`` into ``lib<prefix>.a`` in ``out_dir`` and return its path.

        Raises :class:`CompilationError` carrying a failed result.
        """
        out_file = f"{out_dir}{os.sep}lib{prefix}.a"
        args = apply_parameters(
            [
                "windres",
                "--input",
                resource,
                "--output-format=coff",
                "--target",
                windres_target(),
                "--output",
                out_file,
                "--include-dir",
                out_dir,
            ],
            "-D",
            "-I",
            parameters,
        )
        try:
            completed = subprocess.run(args, check=False)
        except OSError as err:
            raise CompilationError(
                CompilationResult.failed(
                    f'Couldn\'t to execute windres to compile "{resource}" into "{out_file}": {err}'
                )
            ) from err
        if completed.returncode != 0:
            raise CompilationError(
                CompilationResult.failed(
                    f'windres failed to compile "{resource}" into "{out_file}" '
                    f"with {_describe_status(completed.returncode)}"
                )
            )
        return out_file


def find_windows_sdk_tool(tool: str) -> Path | None:
    """Look ``tool`` up among the SDK directories; none are searched on this toolchain, so ``None``."""
    return next(
        (candidate for directory in _SDK_TOOL_DIRS if (candidate := directory / tool).exists()),
        None,
    )