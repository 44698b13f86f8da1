"""Resource compilation with RC.EXE on a Windows MSVC host."""

from __future__ import annotations

import enum
import os
import subprocess
from pathlib import Path
from typing import Any

from .params import apply_parameters
from .result import CompilationError, CompilationResult

try:
    import winreg
except ImportError:  # not on Windows
    winreg = None  # type: ignore[assignment]

_KITS_KEY = r"SOFTWARE\Microsoft\Windows Kits\Installed Roots"
_SDKS_KEY = r"SOFTWARE\Microsoft\Microsoft SDKs\Windows"

_include_updated = False


class Arch(enum.Enum):
    """Host architecture, which selects the SDK bin directory."""

    X86 = "x86"
    X64 = "x64"
    AARCH64 = "arm64"

    @classmethod
    def from_host(cls, host: str) -> Arch:
        """Map a host triple onto an architecture; anything unknown is x86."""
        if host.startswith("x86_64"):
            return cls.X64
        if host.startswith("aarch64"):
            return cls.AARCH64
        return cls.X86


def try_bin_dir(
    root_dir: str | os.PathLike[str],
    x86_bin: str,
    x64_bin: str,
    aarch64_bin: str,
    arch: Arch,
) -> Path | None:
    """The architecture's subdirectory of ``root_dir``, if it is a directory."""
    sub = {Arch.X86: x86_bin, Arch.X64: x64_bin, Arch.AARCH64: aarch64_bin}[arch]
    candidate = Path(root_dir) / sub
    return candidate if candidate.is_dir() else None


def try_tool(directory: str | os.PathLike[str], tool: str) -> Path | None:
    """``directory/tool``, if it exists."""
    candidate = Path(directory) / tool
    return candidate if candidate.exists() else None


def _registry_value(subkey: str, name: str) -> str | None:
    if winreg is None:
        return None
    try:
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, subkey, 0, winreg.KEY_QUERY_VALUE) as key:
            value, _ = winreg.QueryValueEx(key, name)
    except OSError:
        return None
    return value if isinstance(value, str) else None


def _subdirectories(path: str | os.PathLike[str]) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(path) as entries:
            return [entry for entry in entries if entry.is_dir()]
    except OSError:
        return []


def _include_windows_10_kits(kit_root: str) -> None:
    """Add every ``Include\\<version>\\<part>`` directory to ``%INCLUDE%``, once per process.

    Without these RC.EXE cannot find ``windows.h``.
    """
    global _include_updated
    if _include_updated:
        return
    _include_updated = True

    include = os.environ.get("INCLUDE", "")
    if not include.endswith(";"):
        include += ";"
    for version_dir in _subdirectories(kit_root + "\\Include\\"):
        for part in _subdirectories(version_dir.path):
            if part.path not in include:
                include += part.path + ";"
    os.environ["INCLUDE"] = include


def _find_windows_10_kits_tool(key: str, arch: Arch, tool: str) -> Path | None:
    kit_root = _registry_value(_KITS_KEY, key)
    if kit_root is None:
        return None
    _include_windows_10_kits(kit_root)
    root_dir = kit_root + "/bin"
    try:
        with os.scandir(root_dir) as entries:
            names = [entry.name for entry in entries if not entry.is_file()]
    except OSError:
        return None
    for name in names:
        bin_dir = try_bin_dir(root_dir, f"{name}/x86", f"{name}/x64", f"{name}/arm64", arch)
        found = bin_dir and try_tool(bin_dir, tool)
        if found:
            return found
    return None


def _find_windows_kits_tool(key: str, arch: Arch, tool: str) -> Path | None:
    root_dir = _registry_value(_KITS_KEY, key)
    if root_dir is None:
        return None
    bin_dir = try_bin_dir(root_dir, "bin/x86", "bin/x64", "bin/arm64", arch)
    return try_tool(bin_dir, tool) if bin_dir else None


def _find_latest_windows_sdk_tool(arch: Arch, tool: str) -> Path | None:
    root_dir = _registry_value(_SDKS_KEY, "CurrentInstallFolder")
    if root_dir is None:
        return None
    bin_dir = try_bin_dir(root_dir, "Bin", "Bin/x64", "Bin/arm64", arch)
    return try_tool(bin_dir, tool) if bin_dir else None


def find_windows_sdk_tool(tool: str) -> Path | None:
    """Look for an SDK tool such as ``rc.exe`` or ``midl.exe`` in the Windows Kits and SDK directories."""
    host = os.environ.get("HOST")
    if host is None:
        raise RuntimeError("No HOST env var")
    arch = Arch.from_host(host)
    return (
        _find_windows_10_kits_tool("KitsRoot10", arch, tool)
        or _find_windows_kits_tool("KitsRoot10", arch, tool)
        or _find_windows_kits_tool("KitsRoot81", arch, tool)
        or _find_windows_kits_tool("KitsRoot", arch, tool)
        or _find_latest_windows_sdk_tool(arch, tool)
    )


class ResourceCompiler:
    """RC.EXE-based resource compiler; always available."""

    def __init__(self) -> None:
        # RC.EXE is looked for when compiling, so nothing is known to be missing up front.
        self._missing: str | None = None

    def is_supported(self) -> str | None:
        """What is missing to compile resources; ``None`` since RC.EXE is looked for at compile time."""
        return self._missing

    def compile_resource(self, out_dir: str, prefix: str, resource: str, parameters: Any) -> str:
        """Compile ``resource`` into ``<prefix>.lib`` in ``out_dir`` and return its path.

        Raises :class:`CompilationError` carrying a failed result.
        """
        out_file = f"{out_dir}{os.sep}{prefix}.lib"
        rc = find_windows_sdk_tool("rc.exe") or Path("rc.exe")
        args = apply_parameters([str(rc), "/fo", out_file, "/I", out_dir], "/D", "/I", parameters)
        args.append(resource)
        try:
            completed = subprocess.run(args, check=False)
        except OSError as err:
            raise CompilationError(
                CompilationResult.failed("Are you sure you have RC.EXE in your $PATH?")
            ) from err
        if completed.returncode != 0:
            raise CompilationError(
                CompilationResult.failed("RC.EXE failed to compile specified resource file")
            )
        return out_file