"""Compile Windows resource files and print Cargo link directives for them."""

__version__ = "3.0.6"