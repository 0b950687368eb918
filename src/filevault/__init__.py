"""filevault – secure upload, scanning and object storage for user files."""

__version__ = "0.1.0"

__all__ = ["__version__"]
