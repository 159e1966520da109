"""Subject anonymization for risk logs and alerts.

Chat users are identified downstream only by a keyed HMAC of their id.
Message text never leaves the process: logs carry a short fingerprint
so repeated messages can be correlated.
"""
import hashlib
import hmac
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32
DEV_SALT = "sentinela_dev_salt_not_for_production_use"
ANONYMOUS_SUBJECT = "anonymous"
FINGERPRINT_CHARS = 16

_subject_key: Optional[bytes] = None


def configure_pii_salt(salt: str) -> None:
    """Set the HMAC key for subject ids.

    Raises:
        ValueError: If salt is empty or shorter than MIN_SALT_LENGTH
    """
    global _subject_key
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _subject_key = salt.encode("utf-8")
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def configure_pii_salt_from_env() -> None:
    """Read PII_HASH_SALT; the development salt is only allowed outside production."""
    salt = os.getenv("PII_HASH_SALT")
    if not salt:
        if os.getenv("ENVIRONMENT", "development") == "production":
            raise ValueError("PII_HASH_SALT is required in production")
        logger.warning("PII_SALT_DEV_DEFAULT")
        salt = DEV_SALT
    configure_pii_salt(salt)


def hash_subject_id(subject_id: Optional[str]) -> str:
    """Anonymize a chat user id.

    Missing ids hash as ANONYMOUS_SUBJECT so alerts still group them.

    Raises:
        RuntimeError: If the salt has not been configured
    """
    if _subject_key is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    value = str(subject_id) if subject_id not in (None, "") else ANONYMOUS_SUBJECT
    return hmac.new(_subject_key, value.encode("utf-8"), hashlib.sha256).hexdigest()


def fingerprint_message(text: str) -> str:
    """Short unkeyed digest of a message for log correlation."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:FINGERPRINT_CHARS]
