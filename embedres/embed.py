"""Compile a Windows resource and tell Cargo how to link it."""

from __future__ import annotations

import os
import subprocess
import sys
import tomllib
from collections.abc import Callable, Iterable
from pathlib import Path
from types import ModuleType
from typing import Any

from . import non_windows, windows_gnu, windows_msvc
from .params import NONE, to_bundle
from .result import CompilationError, CompilationResult


def _backend() -> ModuleType:
    if sys.platform != "win32":
        return non_windows
    if os.environ.get("HOST", "").endswith(("-gnu", "-gnullvm")):
        return windows_gnu
    return windows_msvc


def _compile_impl(resource_file: Any, parameters: Any) -> tuple[str, str, str]:
    compiler = _backend().ResourceCompiler()
    missing = compiler.is_supported()
    if missing is not None:
        result = (
            CompilationResult.not_attempted(missing) if missing else CompilationResult.not_windows()
        )
        raise CompilationError(result)

    resource = os.fsdecode(resource_file)
    prefix = Path(resource).stem
    if not prefix:
        raise ValueError("resource_file has no stem")
    out_dir = os.environ.get("OUT_DIR")
    if out_dir is None:
        raise RuntimeError("No OUT_DIR env var")
    out_file = compiler.compile_resource(out_dir, prefix, resource, to_bundle(parameters))
    return prefix, out_dir, out_file


def _attempt(
    resource_file: Any, parameters: Any, link: Callable[[str, str, str], None]
) -> CompilationResult:
    try:
        prefix, out_dir, out_file = _compile_impl(resource_file, parameters)
    except CompilationError as err:
        return err.result
    link(prefix, out_dir, out_file)
    return CompilationResult.ok()


def _rustc_version() -> tuple[int, ...]:
    rustc = os.environ.get("RUSTC", "rustc")
    try:
        output = subprocess.run(
            [rustc, "-vV"], stdout=subprocess.PIPE, check=True, text=True
        ).stdout
    except (OSError, subprocess.CalledProcessError) as err:
        raise RuntimeError("couldn't get rustc version") from err
    for line in output.splitlines():
        if line.startswith("release:"):
            release = line.split(":", 1)[1].strip().split("-", 1)[0]
            try:
                return tuple(int(part) for part in release.split("."))
            except ValueError as err:
                raise RuntimeError("couldn't get rustc version") from err
    raise RuntimeError("couldn't get rustc version")


def crate_has_binaries(root: str | os.PathLike[str] = ".") -> bool:
    """Whether the crate at ``root`` builds binaries.

    True if ``Cargo.toml`` has a ``bin`` table, ``src/main.rs`` exists or ``src/bin`` is a directory.
    """
    root = Path(root)
    fallback = "assuming src/main.rs or S_ISDIR(src/bin/)"
    try:
        text = (root / "Cargo.toml").read_text()
    except (OSError, UnicodeDecodeError) as err:
        print(f"Couldn't read Cargo.toml: {err}; {fallback}", file=sys.stderr)
        text = ""
    try:
        table = tomllib.loads(text)
    except tomllib.TOMLDecodeError as err:
        print(f"Couldn't parse Cargo.toml: {err}; {fallback}", file=sys.stderr)
        table = {}
    return (
        "bin" in table
        or (root / "src" / "main.rs").exists()
        or (root / "src" / "bin").is_dir()
    )


def compile(resource_file: Any, parameters: Any = NONE) -> CompilationResult:
    """Compile the resource and link it to the crate's binaries (or, failing those, its library).

    ``parameters`` are macros (``NAME``/``NAME=VALUE``), a ``ParamsMacros``,
    ``ParamsIncludeDirs`` or ``ParamsMacrosAndIncludeDirs``. ``$OUT_DIR`` is always an include directory.
    """

    def link(prefix: str, out_dir: str, out_file: str) -> None:
        hasbins = crate_has_binaries(".")
        print(f"Final verdict: crate has binaries: {str(hasbins).lower()}", file=sys.stderr)
        if hasbins and _rustc_version() >= (1, 50, 0):
            print(f"cargo:rustc-link-arg-bins={out_file}")
        else:
            # Older Cargo links only to the calling crate's library.
            print(f"cargo:rustc-link-search=native={out_dir}")
            print(f"cargo:rustc-link-lib=dylib={prefix}")

    return _attempt(resource_file, parameters, link)


def compile_for(resource_file: Any, for_bins: Iterable[Any], parameters: Any = NONE) -> CompilationResult:
    """Likewise, but link only to the named binaries."""

    def link(prefix: str, out_dir: str, out_file: str) -> None:
        for binary in for_bins:
            print(f"cargo:rustc-link-arg-bin={binary}={out_file}")

    return _attempt(resource_file, parameters, link)


def _link_with(directive: str) -> Callable[[str, str, str], None]:
    def link(prefix: str, out_dir: str, out_file: str) -> None:
        print(f"{directive}={out_file}")

    return link


def compile_for_tests(resource_file: Any, parameters: Any = NONE) -> CompilationResult:
    """Likewise, but link only to test binaries."""
    return _attempt(resource_file, parameters, _link_with("cargo:rustc-link-arg-tests"))


def compile_for_benchmarks(resource_file: Any, parameters: Any = NONE) -> CompilationResult:
    """Likewise, but link only to benchmarks."""
    return _attempt(resource_file, parameters, _link_with("cargo:rustc-link-arg-benches"))


def compile_for_examples(resource_file: Any, parameters: Any = NONE) -> CompilationResult:
    """Likewise, but link only to examples."""
    return _attempt(resource_file, parameters, _link_with("cargo:rustc-link-arg-examples"))


def compile_for_everything(resource_file: Any, parameters: Any = NONE) -> CompilationResult:
    """Likewise, but link into every artifact."""
    return _attempt(resource_file, parameters, _link_with("cargo:rustc-link-arg"))


def find_windows_sdk_tool(tool: str) -> Path | None:
    """Find an MSVC build tool such as ``midl.exe``; ``None`` on other toolchains."""
    return _backend().find_windows_sdk_tool(tool)