[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "embedres"
version = "3.0.6"
description = "Compile Windows resource files and print the Cargo directives that link them"
requires-python = ">=3.11"
dependencies = []
keywords = ["cargo", "build", "windows", "resource", "manifest", "windres", "rc", "llvm-rc"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
embedres = "embedres.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["embedres"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
