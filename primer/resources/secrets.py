"""
resources/secrets.py - Session secret generation

The auth proxy signs its cookies with a random alphanumeric token. Tokens
contain each decimal digit once and distinct letters for the remainder, in a
cryptographically random order.
"""

from __future__ import annotations
import secrets
import string

from ..core.constants import SESSION_SECRET_DIGITS, SESSION_SECRET_LENGTH
from ..errors import SecretGenerationError

_LETTERS = string.ascii_letters
_DIGITS = string.digits


def generate_session_secret(
    length: int = SESSION_SECRET_LENGTH,
    num_digits: int = SESSION_SECRET_DIGITS,
) -> str:
    """
    Generate a fresh session token.

    Args:
        length: Total token length
        num_digits: How many characters are digits

    Returns:
        Alphanumeric token with no repeated characters

    Raises:
        SecretGenerationError: If the system random source fails
        ValueError: If the requested shape cannot be satisfied without repeats
    """
    num_letters = length - num_digits
    if num_digits > len(_DIGITS) or num_letters < 0 or num_letters > len(_LETTERS):
        raise ValueError(f"cannot build a {length}-character token with {num_digits} unique digits")

    try:
        rng = secrets.SystemRandom()
        chars = rng.sample(_DIGITS, num_digits) + rng.sample(_LETTERS, num_letters)
        rng.shuffle(chars)
    except (OSError, NotImplementedError) as e:
        raise SecretGenerationError(e) from e

    return "".join(chars)
