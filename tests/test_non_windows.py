import json
import os
import sys
import textwrap

import pytest

from embedres.non_windows import (
    Compiler,
    CompilerKind,
    ResourceCompiler,
    find_windows_sdk_tool,
    guess_compiler_variant,
    is_runnable,
)
from embedres.params import ParamsMacrosAndIncludeDirs
from embedres.result import CompilationError, ResultKind

LLVM_HELP = "OVERVIEW: LLVM Resource Converter\\n  /no-preprocess   Skip preprocessing"
LLVM_HELP_OLD = "OVERVIEW: Resource Converter\\n  /fo <value>"


def _tool(directory, name, body):
    path = directory / name
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
    path.chmod(0o755)
    return path


def _recorder(directory, name, record, help_text=None, stdout="", exit_code=0):
    help_branch = ""
    if help_text is not None:
        help_branch = f"""
        if "/?" in sys.argv[1:]:
            print("{help_text}")
            sys.exit(0)
        """
    body = f"""
    import json, os, sys
    {textwrap.dedent(help_branch).strip()}
    if sys.argv[1:]:
        with open({str(record)!r}, "a") as fh:
            fh.write(json.dumps({{"argv": sys.argv[1:], "cwd": os.getcwd()}}) + "\\n")
    sys.stdout.write({stdout!r})
    sys.exit({exit_code})
    """
    return _tool(directory, name, body)


def _records(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith(("RC", "CC", "CFLAGS", "TARGET")):
            monkeypatch.delenv(name, raising=False)
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir))
    return bin_dir


def test_probe_without_target(clean_env):
    with pytest.raises(LookupError) as err:
        Compiler.probe()
    assert str(err.value) == "no $TARGET"


def test_probe_non_windows_target(clean_env, monkeypatch):
    monkeypatch.setenv("TARGET", "x86_64-unknown-linux-gnu")
    with pytest.raises(LookupError) as err:
        Compiler.probe()
    assert str(err.value) == ""


def test_resource_compiler_not_windows_error_is_taken_once(clean_env, monkeypatch):
    monkeypatch.setenv("TARGET", "x86_64-pc-windows-gnu")
    compiler = ResourceCompiler()
    assert compiler.is_supported() == "x86_64-w64-mingw32-windres"
    assert compiler.is_supported() == ""


def test_probe_gnu_finds_mingw_windres(clean_env, monkeypatch, tmp_path):
    _recorder(clean_env, "x86_64-w64-mingw32-windres", tmp_path / "rec")
    monkeypatch.setenv("TARGET", "x86_64-pc-windows-gnu")
    assert Compiler.probe() == Compiler(CompilerKind.WINDRES, "x86_64-w64-mingw32-windres")
    assert ResourceCompiler().is_supported() is None


def test_probe_gnullvm_missing(clean_env, monkeypatch):
    monkeypatch.setenv("TARGET", "aarch64-pc-windows-gnullvm")
    with pytest.raises(LookupError) as err:
        Compiler.probe()
    assert str(err.value) == "aarch64-w64-mingw32-windres"


def test_probe_msvc_missing_llvm_rc(clean_env, monkeypatch):
    monkeypatch.setenv("TARGET", "x86_64-pc-windows-msvc")
    with pytest.raises(LookupError) as err:
        Compiler.probe()
    assert str(err.value) == "llvm-rc"


def test_probe_rc_env_overrides(clean_env, monkeypatch, tmp_path):
    windres = _recorder(tmp_path, "my-windres", tmp_path / "rec", stdout="GNU windres (GNU Binutils)\n")
    monkeypatch.setenv("TARGET", "x86_64-pc-windows-msvc")
    monkeypatch.setenv("RC", "/nonexistent/rc")
    monkeypatch.setenv("RC_x86_64_pc_windows_msvc", str(windres))
    assert Compiler.probe() == Compiler(CompilerKind.WINDRES, str(windres))


def test_guess_unknown_variant(tmp_path):
    other = _recorder(tmp_path, "other", tmp_path / "rec", stdout="Microsoft RC\n")
    with pytest.raises(LookupError) as err:
        guess_compiler_variant(str(other))
    assert str(err.value) == f"Unknown RC compiler variant: {other}"


def test_guess_unrunnable(tmp_path):
    missing = str(tmp_path / "missing-rc")
    with pytest.raises(LookupError) as err:
        guess_compiler_variant(missing)
    assert str(err.value).startswith(f"Couldn't execute {missing}: ")


def test_is_runnable(tmp_path):
    tool = _recorder(tmp_path, "tool", tmp_path / "rec")
    assert is_runnable(str(tool)) is True
    assert is_runnable(str(tmp_path / "absent")) is False


def test_windres_compile_arguments(tmp_path):
    record = tmp_path / "rec"
    windres = _recorder(tmp_path, "windres", record)
    compiler = Compiler(CompilerKind.WINDRES, str(windres))
    params = ParamsMacrosAndIncludeDirs(["VERSION=1", "DEBUG"], ["inc"])
    out = compiler.compile("out", "app", "app.rc", params)
    assert out == "out/app.lib"
    assert _records(record)[0]["argv"] == [
        "--input", "app.rc", "--output-format=coff", "--output", "out/app.lib",
        "--include-dir", "out", "-D", "VERSION=1", "-D", "DEBUG", "--include-dir", "inc",
    ]


def test_windres_compile_failure(tmp_path):
    windres = _recorder(tmp_path, "windres", tmp_path / "rec", exit_code=3)
    compiler = Compiler(CompilerKind.WINDRES, str(windres))
    with pytest.raises(CompilationError) as err:
        compiler.compile("out", "app", "app.rc", [])
    result = err.value.result
    assert result.kind is ResultKind.FAILED
    assert result.message == f'{windres} failed to compile "app.rc" into "out/app.lib" with exit status: 3'


def test_llvm_rc_compile_preprocesses_first(tmp_path, monkeypatch):
    cc_record = tmp_path / "cc-rec"
    rc_record = tmp_path / "rc-rec"
    cc = _recorder(tmp_path, "fakecc", cc_record, stdout="PREPROCESSED\n")
    rc = _recorder(tmp_path, "fake-llvm-rc", rc_record)
    monkeypatch.setenv("CC", str(cc))
    monkeypatch.delenv("CFLAGS", raising=False)
    monkeypatch.setenv("TARGET", "x86_64-pc-windows-msvc")
    res_dir = tmp_path / "res"
    res_dir.mkdir()
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    resource = str(res_dir / "app.rc")

    compiler = Compiler(CompilerKind.LLVM_RC, str(rc), True)
    out = compiler.compile(str(out_dir), "app", resource, ParamsMacrosAndIncludeDirs(["V=2"], ["inc"]))

    preprocessed = f"{out_dir}/app-preprocessed.rc"
    assert out == f"{out_dir}/app.lib"
    assert (out_dir / "app-preprocessed.rc").read_text() == "PREPROCESSED\n"

    cc_argv = _records(cc_record)[0]["argv"]
    assert "-DRC_INVOKED" in cc_argv
    assert "-DV=2" in cc_argv
    assert cc_argv[-3:] == ["-xc", "-E", resource]
    assert cc_argv.index("inc") < cc_argv.index(str(out_dir))

    rc_call = _records(rc_record)[0]
    assert rc_call["argv"] == ["/fo", out, "/C", "65001", "/no-preprocess", "--", preprocessed]
    assert os.path.realpath(rc_call["cwd"]) == os.path.realpath(res_dir)


def test_llvm_rc_without_no_preprocess_flag(tmp_path, monkeypatch):
    rc_record = tmp_path / "rc-rec"
    cc = _recorder(tmp_path, "fakecc", tmp_path / "cc-rec", stdout="X\n")
    rc = _recorder(tmp_path, "fake-llvm-rc", rc_record)
    monkeypatch.setenv("CC", str(cc))
    monkeypatch.chdir(tmp_path)
    compiler = Compiler(CompilerKind.LLVM_RC, str(rc), False)
    out = compiler.compile(str(tmp_path), "x", "x.rc", [])
    assert "/no-preprocess" not in _records(rc_record)[0]["argv"]
    assert out.endswith("/x.lib")


def test_compile_resource_without_compiler(clean_env, monkeypatch):
    monkeypatch.setenv("TARGET", "x86_64-unknown-linux-gnu")
    with pytest.raises(RuntimeError):
        ResourceCompiler().compile_resource("out", "app", "app.rc", [])


def test_find_windows_sdk_tool_is_none():
    assert find_windows_sdk_tool("rc.exe") is None