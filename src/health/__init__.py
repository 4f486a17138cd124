"""COVID-19 Health Building Block: authentication and version resolution core.

This package contains the identity-resolution layer (API-key, user and admin
gates over the legacy SSO, legacy phone and access/CSRF token schemes), the
identity cache, the roster index and the app-version resolver, plus the thin
FastAPI surface and storage adapters that exercise them.
"""

__version__ = "0.1.0"
