"""Building blocks for turning WebAssembly binary modules into readable JavaScript."""

__version__ = "0.1.0"