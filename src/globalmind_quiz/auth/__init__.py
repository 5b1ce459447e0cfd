from .identity import GUEST_NAME, AuthError, Identity, LocalIdentityProvider

__all__ = [
    "GUEST_NAME",
    "AuthError",
    "Identity",
    "LocalIdentityProvider",
]
