import secrets
import string

# Constants to replace magic numbers
SHORT_KEY_LENGTH = 7
SHORT_KEY_MAX_LENGTH = 256
# Base-36: lower-case letters and digits, URL-safe without escaping
SHORT_KEY_ALPHABET = string.digits + string.ascii_lowercase


def generate_short_key(length: int = SHORT_KEY_LENGTH) -> str:
    """
    Generate a random short key.

    Args:
        length (int): Number of characters in the key (default: 7)

    Returns:
        str: A base-36 token drawn from a CSPRNG

    Raises:
        ValueError: If length is not positive
    """
    if length <= 0:
        raise ValueError(f"Short key length must be positive, got: {length}")

    return ''.join(secrets.choice(SHORT_KEY_ALPHABET) for _ in range(length))


def build_short_url(base_url: str, short_key: str) -> str:
    """Join the configured host base URL and a short key."""
    return f"{base_url.rstrip('/')}/{short_key}"


def is_valid_short_key(short_key: str) -> bool:
    """
    Check whether a path segment can be looked up as a short key.

    Stored keys are never validated against the alphabet, so anything that
    is a single non-empty path segment of sane length qualifies.

    Args:
        short_key (str): Candidate key taken from the request path

    Returns:
        bool: True if the key may be looked up, False otherwise
    """
    if not short_key or not isinstance(short_key, str):
        return False

    if len(short_key) > SHORT_KEY_MAX_LENGTH:
        return False

    return '/' not in short_key
