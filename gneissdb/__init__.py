"""Storage components of an LSM-tree key-value store."""

__version__ = "0.1.0"