# embedres

Compile a Windows resource file (`.rc`) and print the `cargo:` directives
that link the result into a Rust crate's artifacts. The compiler is chosen
by host and target:

* on a non-Windows host, `$TARGET` decides:
  * `RC_$TARGET`, `RC_${TARGET//-/_}` or `RC`, if set, names the compiler;
    it is identified as windres or LLVM-RC from its `-V /?` output;
  * `*-windows-gnu` and `*-windows-gnullvm` use `<arch>-w64-mingw32-windres`;
  * `*-windows-msvc` uses `llvm-rc`, after running the resource through a C
    preprocessor (`CC_$TARGET`, `CC_${TARGET//-/_}`, `TARGET_CC`, `CC`, or
    `cc`, with flags from the matching `CFLAGS` variables);
  * any other target is "not building for Windows";
* on Windows with a `$HOST` ending in `-gnu` or `-gnullvm`, `windres`;
* on other Windows hosts, `rc.exe`, looked for in the Windows Kits and SDK
  directories named in the registry, else taken from `PATH`.

`$OUT_DIR` must be set; it is always an include directory and the compiled
file is written there.

## Use from a build step

```python
from embedres.embed import compile, compile_for
from embedres.params import ParamsIncludeDirs, ParamsMacrosAndIncludeDirs

compile("checksums.rc", []).manifest_optional()
compile("checksums.rc", ["VERSION=000901"]).manifest_required()
compile("checksums.rc",
        ParamsMacrosAndIncludeDirs(["VERSION=000901"], ["src/include"])).manifest_required()
compile_for("assets/uninstaller.rc", ["unins001"],
            ParamsIncludeDirs(["src/include"])).manifest_required()
```

Parameters (module `embedres.params`) are a plain iterable of macros
(`NAME` or `NAME=VALUE`), `None`, or one of `ParamsMacros`,
`ParamsIncludeDirs` and `ParamsMacrosAndIncludeDirs`; `to_bundle()` turns
any of them into a `ParameterBundle`.

Every `compile*` function returns a `CompilationResult`
(module `embedres.result`), whose `kind` is a `ResultKind`:
`NOT_WINDOWS`, `OK`, `NOT_ATTEMPTED` or `FAILED`.

* `manifest_optional()` raises `CompilationError` only for `FAILED` — use it
  when the resource is cosmetic, such as an icon;
* `manifest_required()` also raises for `NOT_ATTEMPTED` (no resource
  compiler found) — use it when the manifest matters.

What each function prints on success:

| function | directive |
| --- | --- |
| `compile` | `cargo:rustc-link-arg-bins=…` if the crate has binaries and rustc is 1.50.0 or newer, else `cargo:rustc-link-search=native=…` and `cargo:rustc-link-lib=dylib=…` |
| `compile_for` | `cargo:rustc-link-arg-bin=<bin>=…` for each named binary |
| `compile_for_tests` | `cargo:rustc-link-arg-tests=…` |
| `compile_for_benchmarks` | `cargo:rustc-link-arg-benches=…` |
| `compile_for_examples` | `cargo:rustc-link-arg-examples=…` |
| `compile_for_everything` | `cargo:rustc-link-arg=…` |

`compile` asks `$RUSTC` (or `rustc`) for its version, and decides whether the
crate has binaries with `crate_has_binaries()`: a `bin` table in
`Cargo.toml`, a `src/main.rs`, or a `src/bin` directory.

`find_windows_sdk_tool("midl.exe")` looks for other SDK tools on MSVC
Windows and returns `None` on other hosts and toolchains.

## Command line

```
embedres resource.rc [include-dir]
```

Sets `TARGET` from the machine's architecture and `OUT_DIR` to the current
directory, then compiles the resource twice with `manifest_required()`:
once for the whole crate with the macro `VERSION="0.5.0"`, and once for the
binaries `embed_resource` and `embed_resource-installer`. The include
directory, if given, is passed to both. It exits with the error message if
either compilation is not acceptable.

## Limits

* `rc.exe` is not looked for through a Visual Studio installation query;
  only the registry's Windows Kits and SDK roots and `PATH` are searched.
* `%INCLUDE%` is extended with the Windows 10 Kits' `Include` directories,
  but not with the include paths of the MSVC C compiler.
* No `cargo:rerun-if-changed` directives are printed.