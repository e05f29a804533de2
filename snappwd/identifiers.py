"""
Identifier generation and the kind gate.

An identifier is a kind prefix followed by 128 random bits in base58:

    sps-<token>   secret
    spf-<token>   file

Identifiers are the only handle to a record, so they are never listed and
never derived from anything guessable.
"""

import os
from enum import Enum
from typing import Optional

import base58

TOKEN_BYTES = 16
LEGACY_SECRET_PREFIX = "sp-"

_ALPHABET = set(base58.BITCOIN_ALPHABET.decode("ascii"))


class PayloadKind(Enum):
    SECRET = "secret"
    FILE = "file"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]


_PREFIXES = {
    PayloadKind.SECRET: "sps-",
    PayloadKind.FILE: "spf-",
}

# Ids issued before files existed carry a bare prefix and are always secrets
_ACCEPTED_PREFIXES = {
    PayloadKind.SECRET: ("sps-", LEGACY_SECRET_PREFIX),
    PayloadKind.FILE: ("spf-",),
}


def generate_token() -> str:
    return base58.b58encode(os.urandom(TOKEN_BYTES)).decode("ascii")


def generate_identifier(kind: PayloadKind) -> str:
    """Return a fresh identifier for ``kind``"""
    return f"{kind.prefix}{generate_token()}"


def split_identifier(identifier: str) -> Optional[tuple]:
    """Split into (prefix, token), or None if no known prefix applies."""
    for prefix in ("sps-", "spf-", LEGACY_SECRET_PREFIX):
        if identifier.startswith(prefix):
            return prefix, identifier[len(prefix):]
    return None


def accepts(kind: PayloadKind, identifier: str) -> bool:
    """
    Kind gate for retrieval.

    True when the identifier carries a prefix accepted for ``kind`` and a
    non-empty base58 token. Runs before any backend call so a mismatch
    reveals nothing about whether the identifier exists.
    """
    if not isinstance(identifier, str):
        return False

    for prefix in _ACCEPTED_PREFIXES[kind]:
        if identifier.startswith(prefix):
            token = identifier[len(prefix):]
            return bool(token) and all(ch in _ALPHABET for ch in token)

    return False


def redact(identifier: str) -> str:
    """Loggable form of an identifier: prefix and token length only"""
    parts = split_identifier(identifier)
    if parts is None:
        return f"<unknown:{len(identifier)}>"
    prefix, token = parts
    return f"{prefix}<{len(token)}>"
