from .roster_index import RosterIndex

__all__ = ["RosterIndex"]
