from .entity import RosterEntry
from .table import RosterTable

__all__ = ["RosterEntry", "RosterTable"]
