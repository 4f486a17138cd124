"""Identity entity module.

- Identity, Account, SsoClaims: domain models
- IdentityTable: database persistence model
"""

from .entity import Account, Identity, SsoClaims
from .table import IdentityTable

__all__ = ["Account", "Identity", "IdentityTable", "SsoClaims"]
