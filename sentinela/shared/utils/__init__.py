"""Shared utilities for Sentinela."""
from .pii import configure_pii_salt, configure_pii_salt_from_env, fingerprint_message, hash_subject_id

__all__ = ["configure_pii_salt", "configure_pii_salt_from_env", "fingerprint_message", "hash_subject_id"]
