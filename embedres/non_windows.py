"""Resource compilation when building for Windows from a non-Windows host."""

from __future__ import annotations

import enum
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .params import ParameterBundle, apply_parameters, to_bundle
from .result import CompilationError, CompilationResult

_NO_PREPROCESS = b"no-preprocess"

# No Windows SDK is installed on a non-Windows host, so there is nowhere to look.
_SDK_TOOL_DIRS: tuple[Path, ...] = ()


class CompilerKind(enum.Enum):
    """Family of resource compiler in use."""

    LLVM_RC = "llvm-rc"
    """LLVM-RC; needs a separate C preprocessor step on the source file."""
    WINDRES = "windres"
    """MinGW windres."""


def _failure(message: str) -> CompilationError:
    return CompilationError(CompilationResult.failed(message))


def _describe_status(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status: {returncode}"


def _try_command(args: list[str], action: str, whom: str, where: str, **kwargs: Any) -> None:
    executable = args[0]
    try:
        completed = subprocess.run(args, check=False, **kwargs)
    except OSError as err:
        raise _failure(
            f'Couldn\'t execute {executable} to {action} "{whom}" into "{where}": {err}'
        ) from err
    if completed.returncode != 0:
        raise _failure(
            f'{executable} failed to {action} "{whom}" into "{where}" '
            f"with {_describe_status(completed.returncode)}"
        )


def _or_curdir(directory: str) -> str:
    return directory if directory else "."


def _first_env(*names: str) -> str | None:
    return next((os.environ[name] for name in names if name in os.environ), None)


def _c_compiler(target: str) -> list[str]:
    underscored = target.replace("-", "_")
    configured = _first_env(f"CC_{target}", f"CC_{underscored}", "TARGET_CC", "CC")
    return shlex.split(configured) if configured else ["cc"]


def _c_flags(target: str) -> list[str]:
    underscored = target.replace("-", "_")
    configured = _first_env(f"CFLAGS_{target}", f"CFLAGS_{underscored}", "TARGET_CFLAGS", "CFLAGS")
    return shlex.split(configured) if configured else []


def _is_like_msvc(command: list[str]) -> bool:
    return Path(command[0]).stem.lower() in ("cl", "clang-cl")


def _preprocess(resource: str, out_dir: str, bundle: ParameterBundle) -> bytes:
    """Run the C preprocessor over ``resource`` and return what it produced."""
    target = os.environ.get("TARGET", "")
    compiler = _c_compiler(target)
    args = [*compiler, *_c_flags(target)]
    for include_dir in (*bundle.include_dirs, out_dir):
        args += ["-I", include_dir]
    args.append("-DRC_INVOKED")
    args += [f"-D{macro}" for macro in bundle.macros]
    if _is_like_msvc(compiler):
        args.append("-Xclang")
    args += ["-xc", "-E", resource]

    try:
        completed = subprocess.run(args, stdout=subprocess.PIPE, check=False)
    except OSError as err:
        raise _failure(f'Couldn\'t execute {compiler[0]} to preprocess "{resource}": {err}') from err
    if completed.returncode != 0:
        raise _failure(
            f'{compiler[0]} failed to preprocess "{resource}" '
            f"with {_describe_status(completed.returncode)}"
        )
    return completed.stdout


@dataclass(frozen=True)
class Compiler:
    """A resource compiler executable and how to drive it."""

    kind: CompilerKind
    executable: str
    has_no_preprocess: bool = False

    @classmethod
    def probe(cls) -> Compiler:
        """Find the resource compiler for ``$TARGET``.

        Raises :class:`LookupError` whose message names what is missing;
        an empty message means the target is not Windows.
        """
        target = os.environ.get("TARGET")
        if target is None:
            raise LookupError("no $TARGET")

        rc = _first_env(f"RC_{target}", f"RC_{target.replace('-', '_')}", "RC")
        if rc is not None:
            return guess_compiler_variant(rc)

        if target.endswith(("-windows-gnu", "-windows-gnullvm")):
            executable = f"{target.split('-', 1)[0]}-w64-mingw32-windres"
            if is_runnable(executable):
                return cls(CompilerKind.WINDRES, executable)
            raise LookupError(executable)

        if target.endswith("-windows-msvc"):
            if not is_runnable("llvm-rc"):
                raise LookupError("llvm-rc")
            try:
                help_text = subprocess.run(
                    ["llvm-rc", "/?"],
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    stdin=subprocess.DEVNULL,
                    check=False,
                ).stdout
            except OSError:
                help_text = b""
            return cls(CompilerKind.LLVM_RC, "llvm-rc", _NO_PREPROCESS in help_text)

        raise LookupError("")

    def compile(self, out_dir: str, prefix: str, resource: str, parameters: Any) -> str:
        """Compile ``resource`` into ``out_dir``; return the path of the output library.

        Raises :class:`CompilationError` carrying a failed result.
        """
        out_file = f"{out_dir}/{prefix}.lib"
        bundle = to_bundle(parameters)

        if self.kind is CompilerKind.LLVM_RC:
            preprocessed_path = f"{out_dir}/{prefix}-preprocessed.rc"
            expanded = _preprocess(resource, out_dir, bundle)
            try:
                Path(preprocessed_path).write_bytes(expanded)
            except OSError as err:
                raise _failure(str(err)) from err

            args = [self.executable, "/fo", out_file, "/C", "65001"]
            if self.has_no_preprocess:
                # Already preprocessed; llvm-rc's own preprocessing needs clang in PATH.
                args.append("/no-preprocess")
            args += ["--", preprocessed_path]
            _try_command(
                args,
                "compile",
                preprocessed_path,
                out_file,
                stdin=subprocess.DEVNULL,
                cwd=_or_curdir(os.path.dirname(resource)),
            )
        else:
            args = apply_parameters(
                [
                    self.executable,
                    "--input",
                    resource,
                    "--output-format=coff",
                    "--output",
                    out_file,
                    "--include-dir",
                    out_dir,
                ],
                "-D",
                "--include-dir",
                bundle,
            )
            _try_command(args, "compile", resource, out_file)

        return out_file


def guess_compiler_variant(executable: str) -> Compiler:
    """Identify the compiler family of ``executable`` from its ``-V /?`` output.

    windres prints its version for ``-V``; LLVM-RC and RC.EXE print help for ``/?``.
    Raises :class:`LookupError` if it cannot be run or is not recognised.
    """
    try:
        completed = subprocess.run(
            [executable, "-V", "/?"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            check=False,
        )
    except OSError as err:
        raise LookupError(f"Couldn't execute {executable}: {err}") from err

    stdout = completed.stdout
    if stdout.startswith(b"GNU windres"):
        return Compiler(CompilerKind.WINDRES, executable)
    if stdout.startswith((b"OVERVIEW: Resource Converter", b"OVERVIEW: LLVM Resource Converter")):
        return Compiler(CompilerKind.LLVM_RC, executable, _NO_PREPROCESS in stdout)
    raise LookupError(f"Unknown RC compiler variant: {executable}")


def is_runnable(executable: str) -> bool:
    """Whether ``executable`` can be started at all."""
    try:
        process = subprocess.Popen(
            [executable],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        return False
    process.kill()
    process.wait()
    return True


class ResourceCompiler:
    """Resource compiler for the current target, probed on creation."""

    def __init__(self) -> None:
        self._compiler: Compiler | None
        self._error: str
        try:
            self._compiler = Compiler.probe()
            self._error = ""
        except LookupError as err:
            self._compiler = None
            self._error = str(err)

    def is_supported(self) -> str | None:
        """``None`` if a compiler was found, else what is missing (taken once; later calls give ``""``)."""
        if self._compiler is not None:
            return None
        error, self._error = self._error, ""
        return error

    def compile_resource(self, out_dir: str, prefix: str, resource: str, parameters: Any) -> str:
        """Compile ``resource`` and return the path of the output library."""
        if self._compiler is None:
            raise RuntimeError("Not supported but we got to compile_resource()?")
        return self._compiler.compile(out_dir, prefix, resource, parameters)


def find_windows_sdk_tool(tool: str) -> Path | None:
    """Look ``tool`` up among the Windows SDK directories; this host has none, so ``None``."""
    return next(
        (candidate for directory in _SDK_TOOL_DIRS if (candidate := directory / tool).exists()),
        None,
    )