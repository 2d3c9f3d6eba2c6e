"""Restore full Docker backups: volumes, images, portainer_data and compose files."""

from .__version__ import __version__

__all__ = ["__version__"]
