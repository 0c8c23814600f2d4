"""Shared library helpers."""

from staffgate.libs.identity_client import (
    AuthEvent,
    IdentityProviderError,
    IdentityProviderProtocol,
    ProviderResult,
    SupabaseIdentityClient,
)
from staffgate.libs.profile_client import (
    ProfileLookupError,
    ProfileLookupProtocol,
    SupabaseProfileClient,
)
from staffgate.libs.storage import ClaimsCache, InMemoryStorage, RedisStorage, StorageArea

__all__ = [
    "AuthEvent",
    "ClaimsCache",
    "IdentityProviderError",
    "IdentityProviderProtocol",
    "InMemoryStorage",
    "ProfileLookupError",
    "ProfileLookupProtocol",
    "ProviderResult",
    "RedisStorage",
    "StorageArea",
    "SupabaseIdentityClient",
    "SupabaseProfileClient",
]
