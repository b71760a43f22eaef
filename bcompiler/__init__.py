"""A compiler for the B programming language emitting fasm, GNU as, HTML/JavaScript or an IR dump."""

__version__ = "0.1.0"