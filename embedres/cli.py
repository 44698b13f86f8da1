"""Command that compiles one resource file."""

from __future__ import annotations

import os
import platform
import sys

from .embed import compile, compile_for
from .params import ParamsIncludeDirs, ParamsMacrosAndIncludeDirs
from .result import CompilationError


def _target_arch() -> str:
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        return "x86_64"
    if machine in ("aarch64", "arm64"):
        return "aarch64"
    return "irrelevant"


def main(argv: list[str] | None = None) -> int:
    """Compile ``resource`` (with an optional include directory) for the whole crate and two binaries."""
    if argv is None:
        argv = sys.argv[1:]

    os.environ["TARGET"] = _target_arch()
    if sys.platform == "win32":
        os.environ["HOST"] = os.environ["TARGET"]
    os.environ["OUT_DIR"] = "."

    if not argv:
        prog = sys.argv[0] if sys.argv and sys.argv[0] else "embed-resource"
        raise SystemExit(f"usage: {prog} resource [include-dir]")
    resource = argv[0]
    include_dir = argv[1] if len(argv) > 1 else None

    try:
        compile(resource, ParamsMacrosAndIncludeDirs(['VERSION="0.5.0"'], include_dir)).manifest_required()
        compile_for(
            resource,
            ["embed_resource", "embed_resource-installer"],
            ParamsIncludeDirs(include_dir),
        ).manifest_required()
    except CompilationError as err:
        raise SystemExit(str(err)) from err
    return 0


if __name__ == "__main__":
    sys.exit(main())