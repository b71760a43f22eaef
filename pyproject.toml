[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bcompiler"
version = "0.1.0"
description = "A compiler for the B programming language emitting x86_64 fasm, AArch64 GNU as, HTML/JavaScript or a textual IR"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "b-language", "assembly", "fasm", "aarch64", "javascript", "intermediate-representation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bcompiler = "bcompiler.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["bcompiler"]

[tool.pytest.ini_options]
addopts = "-ra"
