"""
encrypt()/decrypt() token codec

Reversible obfuscation for sketches, not security. A token is

    ENC:<salt>:<timestamp>:<payload>

    salt       per-call random base36 text, urlsafe base64 without padding
    timestamp  milliseconds since the epoch, base36
    payload    base64 of the UTF-8 text XORed with a key built from
               salt + timestamp + KEY_SUFFIX and a position mix (i * 7 + 13)

Because the salt is random, encrypting the same value twice gives different
tokens that both decrypt to the same text.
"""

import base64
import binascii
import random
import string
import time
from typing import Any

from .errors import SketchError, E_DECRYPT_ERROR
from .values import display

TOKEN_PREFIX = "ENC:"
KEY_SUFFIX = "SECRET_KEY_2024"
SALT_LENGTH = 26

BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_DIGITS[rem])
    return ''.join(reversed(digits))


def _mix(data: bytes, key: bytes) -> bytes:
    """XOR with the rotating key and position scramble (self-inverse)"""
    return bytes(
        byte ^ key[i % len(key)] ^ ((i * 7 + 13) & 0xFF)
        for i, byte in enumerate(data)
    )


def _key(salt: str, timestamp: int) -> bytes:
    return (salt + to_base36(timestamp) + KEY_SUFFIX).encode('utf-8')


def encrypt(value: Any) -> str:
    """Encode the printed form of value into an ENC: token"""
    text = display(value)
    salt = ''.join(random.choice(BASE36_DIGITS) for _ in range(SALT_LENGTH))
    timestamp = int(time.time() * 1000)

    payload = base64.b64encode(_mix(text.encode('utf-8'), _key(salt, timestamp))).decode('ascii')
    salt_encoded = base64.urlsafe_b64encode(salt.encode('ascii')).decode('ascii').rstrip('=')
    return f"{TOKEN_PREFIX}{salt_encoded}:{to_base36(timestamp)}:{payload}"


def decrypt(token: Any) -> str:
    """
    Decode an ENC: token back to text

    Raises:
        SketchError: E_DECRYPT_ERROR for anything that is not a valid token
    """
    if not isinstance(token, str) or not token.startswith(TOKEN_PREFIX):
        raise SketchError(E_DECRYPT_ERROR, 'Invalid encrypted data format. Must start with "ENC:"')

    parts = token[len(TOKEN_PREFIX):].split(':')
    if len(parts) != 3:
        raise SketchError(E_DECRYPT_ERROR, "Invalid encrypted data format")
    salt_encoded, time_encoded, payload = parts

    try:
        padded = salt_encoded + '=' * (-len(salt_encoded) % 4)
        salt = base64.urlsafe_b64decode(padded.encode('ascii')).decode('ascii')
        timestamp = int(time_encoded, 36)
        mixed = base64.b64decode(payload.encode('ascii'), validate=True)
        return _mix(mixed, _key(salt, timestamp)).decode('utf-8')
    except (ValueError, binascii.Error, UnicodeError) as exc:
        raise SketchError(E_DECRYPT_ERROR, f"Invalid encrypted data: {exc}") from exc


__all__ = ['encrypt', 'decrypt', 'to_base36', 'TOKEN_PREFIX']
