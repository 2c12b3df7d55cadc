"""
Idempotency key generation utilities.

Downstream submission and notification retries are keyed by the request's
row reference and workflow cycle so that a re-sent call cannot create a
second record on the receiving side.
"""


def generate_idempotency_key(
    channel: str,
    row_ref: int,
    version: int,
) -> str:
    """
    Generate an idempotency key for a side effect of a request transition.

    Format: channel:row_ref:version

    Args:
        channel: Side-effect channel (``downstream``, ``notify``, ...).
        row_ref: Immutable customer request row reference.
        version: Request version the side effect was produced from.

    Returns:
        Idempotency key string.

    Example:
        >>> generate_idempotency_key("downstream", 42, 3)
        'downstream:42:3'
    """
    return f"{channel}:{row_ref}:{version}"


def parse_idempotency_key(key: str) -> tuple[str, int, int]:
    """
    Parse an idempotency key into its components.

    Raises:
        ValueError: If key format is invalid.
    """
    parts = key.split(":", 2)
    if len(parts) != 3 or not parts[1].isdigit() or not parts[2].isdigit():
        raise ValueError(f"Invalid idempotency key format: {key}")
    return parts[0], int(parts[1]), int(parts[2])
