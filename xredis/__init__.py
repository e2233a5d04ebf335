"""In-memory key-value store and TCP server speaking a subset of RESP."""

__version__ = "0.1.0"