"""Utility modules for the dealer kernel."""

from dealer_kernel.utils.hashing import canonicalize_json, hash_payload
from dealer_kernel.utils.naming import camel_case, snake_case

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "camel_case",
    "snake_case",
]
