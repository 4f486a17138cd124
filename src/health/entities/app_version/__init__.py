from .table import AppVersionTable

__all__ = ["AppVersionTable"]
