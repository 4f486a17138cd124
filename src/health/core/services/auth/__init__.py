from .admin_auth import AdminAuth
from .api_keys import ApiKeyAuth
from .gate import AuthGate, AuthListener
from .user_auth import UserAuth

__all__ = ["AdminAuth", "ApiKeyAuth", "AuthGate", "AuthListener", "UserAuth"]
