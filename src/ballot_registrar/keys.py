"""Typed, use-scoped key records and their JSON form.

A key travels as ``{"k": <base64 bytes>, "kid": ..., "use": ..., "alg": ...}``.
``use`` says which protocol role the key may play and has nothing to do with
the crypto primitive; ``alg`` names the NaCl construction the bytes belong to.
Both are checked every time a key is loaded so that, for example, a voter's
entry key can never be fed where the registrar's signing key is expected.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from nacl import bindings

from .errors import AlgMismatch, BadKeyLength, MalformedKey, UseMismatch


SIGN_ALG = "NaCl-sign-Ed25519"
BOX_ALG = "NaCl-box-CXSP"

SIGN_PUBLIC_KEY_LENGTH = bindings.crypto_sign_PUBLICKEYBYTES
SIGN_SECRET_KEY_LENGTH = bindings.crypto_sign_SECRETKEYBYTES
BOX_KEY_LENGTH = bindings.crypto_box_SECRETKEYBYTES


class KeyUse(str, Enum):
    REGISTRAR_PUBLIC = "registrar-public-key"
    REGISTRAR_SECRET = "registrar-secret-key"
    ENTRY_PUBLIC = "entry-public-key"
    ENTRY_SECRET = "entry-secret-key"
    VOTING_PUBLIC = "voting-public-key"
    VOTING_SECRET = "voting-secret-key"
    MAIN_VOTING_PUBLIC = "main-voting-public-key"
    MAIN_VOTING_SECRET = "main-voting-secret-key"


# every role belongs to exactly one construction
KEY_USE_ALG = {
    KeyUse.REGISTRAR_PUBLIC: SIGN_ALG,
    KeyUse.REGISTRAR_SECRET: SIGN_ALG,
    KeyUse.ENTRY_PUBLIC: BOX_ALG,
    KeyUse.ENTRY_SECRET: BOX_ALG,
    KeyUse.VOTING_PUBLIC: BOX_ALG,
    KeyUse.VOTING_SECRET: BOX_ALG,
    KeyUse.MAIN_VOTING_PUBLIC: BOX_ALG,
    KeyUse.MAIN_VOTING_SECRET: BOX_ALG,
}


@dataclass(frozen=True)
class Key:
    """In-memory key

    Attributes
    - k: raw key bytes, length fixed by ``alg``
    - kid: key id, shared by both halves of a pair
    - use: protocol role of this key
    - alg: NaCl construction the key is for
    """

    k: bytes
    kid: str
    use: KeyUse
    alg: str

    def __repr__(self) -> str:
        # keep secret bytes out of logs and tracebacks
        return f"Key(kid={self.kid!r}, use={self.use.value!r}, alg={self.alg!r})"


def is_like_json_key(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    return all(
        isinstance(obj.get(field), str) and obj.get(field)
        for field in ("k", "kid", "use", "alg")
    )


def b64_encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64_decode(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), validate=True)


def key_from_json(json_key: Dict[str, Any], use: KeyUse, alg: str, klen: int) -> Key:
    """Load a JSON key, insisting on the expected use, alg and byte length.

    Raises MalformedKey when the object does not look like a key at all,
    otherwise UseMismatch, AlgMismatch or BadKeyLength, checked in that order.
    AlgMismatch is also raised when ``alg`` is not the construction of ``use``.
    """
    if not is_like_json_key(json_key):
        raise MalformedKey("object is not a JSON key with k, kid, use and alg")
    kid = json_key["kid"]
    try:
        k = b64_decode(json_key["k"])
    except (binascii.Error, ValueError):
        raise MalformedKey(f"Key {kid} bytes are not valid base64") from None

    if json_key["use"] != use.value:
        raise UseMismatch(kid, use.value, json_key["use"])
    if alg != KEY_USE_ALG[use]:
        raise AlgMismatch(kid, KEY_USE_ALG[use], alg)
    if json_key["alg"] != alg:
        raise AlgMismatch(kid, alg, json_key["alg"])
    if len(k) != klen:
        raise BadKeyLength(kid, klen, len(k))
    return Key(k=k, kid=kid, use=use, alg=alg)


def key_to_json(key: Key) -> Dict[str, str]:
    return {
        "k": b64_encode(key.k),
        "kid": key.kid,
        "use": key.use.value,
        "alg": key.alg,
    }


def signing_public_key(json_key: Dict[str, Any], use: KeyUse) -> Key:
    return key_from_json(json_key, use, SIGN_ALG, SIGN_PUBLIC_KEY_LENGTH)


def signing_secret_key(json_key: Dict[str, Any], use: KeyUse) -> Key:
    return key_from_json(json_key, use, SIGN_ALG, SIGN_SECRET_KEY_LENGTH)


def box_key(json_key: Dict[str, Any], use: KeyUse) -> Key:
    # public and secret box keys have the same length
    return key_from_json(json_key, use, BOX_ALG, BOX_KEY_LENGTH)
