import os

# Must be set before the configuration is first loaded
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("HEALTH_STORAGE", "memory")
os.environ.setdefault("HEALTH_OIDC_PREFETCH", "false")

from tests.fixtures import *  # noqa: E402,F401,F403
