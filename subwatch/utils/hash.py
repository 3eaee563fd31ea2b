"""Hash utilities for SMS message fingerprinting.

Provides stable SHA-256 fingerprints used to recognise SMS messages
that have already been processed.
"""

import hashlib
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from subwatch.models.subscription import SubscriptionMessage


def sha256_hex(content: str) -> str:
    """Return the SHA-256 hex digest of a UTF-8 string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def calculate_message_fingerprint(
    message: Union[str, "SubscriptionMessage"],
) -> str:
    """Calculate the fingerprint of an SMS message.

    Raw strings are hashed as-is. Structured messages are hashed as
    ``sender:message_body`` so the same text from a different sender
    produces a different fingerprint.

    Args:
        message: Raw message text or a SubscriptionMessage.

    Returns:
        SHA-256 hex digest.
    """
    if isinstance(message, str):
        return sha256_hex(message)

    return sha256_hex(f"{message.sender}:{message.message_body}")
