"""Identifier and payment reference generation utilities.

Generates prefixed entity identifiers and external references for declared
transfers in a stable, validatable format.
"""

import re
import time
import uuid
from typing import Optional

ID_PREFIXES = {
    "provider": "prv",
    "subscription": "sub",
    "payment": "pay",
    "audit": "aud",
}

_ID_PATTERN = re.compile(r"^(?P<prefix>[a-z]{3})_(?P<hex>[a-f0-9]{16})$")
_REFERENCE_PATTERN = re.compile(r"^[A-Z]{2,5}_\d{13}_[A-F0-9]{8}$")


def generate_id(entity: str) -> str:
    """Generate a unique identifier for an entity type.

    Format: {prefix}_{16 hex chars}
    Example: sub_a1b2c3d4e5f6a7b8

    Args:
        entity: Entity type ("provider", "subscription", "payment", "audit")

    Returns:
        Unique identifier string

    Raises:
        ValueError: If entity type is unknown
    """
    try:
        prefix = ID_PREFIXES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity}")

    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def generate_provider_id() -> str:
    return generate_id("provider")


def generate_subscription_id() -> str:
    return generate_id("subscription")


def generate_payment_id() -> str:
    return generate_id("payment")


def generate_audit_id() -> str:
    return generate_id("audit")


def generate_transfer_reference(prefix: str = "TRF", timestamp_millis: Optional[int] = None) -> str:
    """Generate an external reference for a declared transfer.

    Format: {prefix}_{millis}_{8 upper hex chars}
    Example: TRF_1700000000000_9F86D081

    Args:
        prefix: Reference prefix
        timestamp_millis: Timestamp to embed (defaults to now)

    Returns:
        Reference string
    """
    if timestamp_millis is None:
        timestamp_millis = int(time.time() * 1000)

    return f"{prefix}_{timestamp_millis:013d}_{uuid.uuid4().hex[:8].upper()}"


def validate_id(identifier: str, entity: Optional[str] = None) -> bool:
    """Validate identifier format.

    Args:
        identifier: Identifier to validate
        entity: Expected entity type, or None for any known type

    Returns:
        True if identifier format is valid, False otherwise
    """
    if not identifier or not isinstance(identifier, str):
        return False

    match = _ID_PATTERN.match(identifier)
    if not match:
        return False

    prefix = match.group("prefix")
    if entity is not None:
        return ID_PREFIXES.get(entity) == prefix

    return prefix in ID_PREFIXES.values()


def validate_transfer_reference(reference: str) -> bool:
    """Validate a generated transfer reference."""
    if not reference or not isinstance(reference, str):
        return False
    return bool(_REFERENCE_PATTERN.match(reference))


def extract_reference_timestamp(reference: str) -> Optional[int]:
    """Extract the embedded timestamp from a generated transfer reference.

    Returns:
        Timestamp in milliseconds, or None if the reference is not a generated one
    """
    if not validate_transfer_reference(reference):
        return None
    return int(reference.split("_")[1])
