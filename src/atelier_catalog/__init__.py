"""
Atelier Catalog.

Local-first persistence and gist-backed sync for image catalogs.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("atelier-catalog")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
