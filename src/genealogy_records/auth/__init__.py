"""Authentication: token signing, password rules and the identity provider boundary."""

from genealogy_records.auth.memory import MemoryAuthProvider
from genealogy_records.auth.passwords import check_password_strength
from genealogy_records.auth.provider import (
    AuthProvider,
    AuthProviderError,
    SupabaseAuthConfig,
    SupabaseAuthProvider,
)
from genealogy_records.auth.tokens import TokenConfig, TokenManager, parse_duration

__all__ = [
    "AuthProvider",
    "AuthProviderError",
    "MemoryAuthProvider",
    "SupabaseAuthConfig",
    "SupabaseAuthProvider",
    "TokenConfig",
    "TokenManager",
    "check_password_strength",
    "parse_duration",
]
