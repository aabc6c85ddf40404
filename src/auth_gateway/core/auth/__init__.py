"""Authentication provider abstraction layer.

The gateway ships one primary provider:
- moodle: Username/password checked against a remote Moodle site
  (auth_gateway.core.auth.moodle.MoodlePasswordAuthProvider)

Providers are built from settings by auth_gateway.core.auth.factory.
"""

from .provider import IdentityStore, PrimaryAuthProvider, UnsupportedOperationError

__all__ = [
    "IdentityStore",
    "PrimaryAuthProvider",
    "UnsupportedOperationError",
]
