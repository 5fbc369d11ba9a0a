"""disk-slice: partition a fresh disk into equal or percentage-weighted filesystems."""

from disk_slice.__version__ import __version__

__all__ = ["__version__"]
