from .account_provisioner import DefaultAccountProvisioner
from .user_management import UserManagementService

__all__ = ["DefaultAccountProvisioner", "UserManagementService"]
