"""Structure-aware file-format scanners for recovering files from raw byte streams."""

__version__ = "0.1.0"