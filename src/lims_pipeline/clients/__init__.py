"""LIMS service clients."""

from .lims import HttpLimsClient, LimsClient

__all__ = ["HttpLimsClient", "LimsClient"]
