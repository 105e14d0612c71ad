"""Signed envelopes ("signed loads") around JSON payloads.

A signed load is ``{"alg", "kid", "sig", "load"}``: the payload bytes and an
Ed25519 signature over them, both base64. ``alg`` and ``kid`` are echoed from
the signing key for diagnostics only; trust is always recomputed from the
public key the verifier supplies.
"""

from __future__ import annotations

import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

from nacl import bindings
from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from .errors import KeyIdentityMismatch, MalformedPayload, SignatureInvalid
from .keys import Key, KeyUse, b64_decode, b64_encode, signing_public_key


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedLoad:
    alg: str
    kid: str
    sig: str
    load: str

    def to_json(self) -> Dict[str, str]:
        return {"alg": self.alg, "kid": self.kid, "sig": self.sig, "load": self.load}

    @classmethod
    def from_json(cls, obj: Any) -> "SignedLoad":
        if not is_like_signed_load(obj):
            raise MalformedPayload("object is not a signed load with alg, kid, sig and load")
        return cls(alg=obj["alg"], kid=obj["kid"], sig=obj["sig"], load=obj["load"])


def is_like_signed_load(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    return all(
        isinstance(obj.get(field), str) and obj.get(field)
        for field in ("alg", "kid", "sig", "load")
    )


def canonical_bytes(payload: Any) -> bytes:
    """Deterministic UTF-8 JSON encoding (sorted keys, compact separators)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sign(payload: Any, sign_key: Key) -> SignedLoad:
    load_bytes = canonical_bytes(payload)
    # the 64-byte NaCl secret key is seed || public key
    seed = sign_key.k[: bindings.crypto_sign_SEEDBYTES]
    signature = SigningKey(seed).sign(load_bytes).signature
    return SignedLoad(
        alg=sign_key.alg,
        kid=sign_key.kid,
        sig=b64_encode(signature),
        load=b64_encode(load_bytes),
    )


def verify_and_open(load: SignedLoad, public_key: Key) -> Any:
    """Check ``load`` against ``public_key`` and return the decoded payload.

    Raises KeyIdentityMismatch when the envelope names a different key,
    SignatureInvalid when the signature does not verify and MalformedPayload
    when the signed bytes are not JSON.
    """
    if load.kid != public_key.kid or load.alg != public_key.alg:
        raise KeyIdentityMismatch(
            f"load signed by key {load.kid} ({load.alg}), "
            f"verifying with key {public_key.kid} ({public_key.alg})"
        )
    try:
        sig_bytes = b64_decode(load.sig)
        load_bytes = b64_decode(load.load)
    except (binascii.Error, ValueError):
        raise MalformedPayload("signed load fields are not valid base64") from None

    try:
        VerifyKey(public_key.k).verify(load_bytes, sig_bytes)
    except (CryptoError, ValueError, TypeError):
        logger.warning("signature verification failed for key %s", public_key.kid)
        raise SignatureInvalid("Signature verification failed") from None

    try:
        return json.loads(load_bytes.decode("utf-8"))
    except ValueError as e:
        raise MalformedPayload(f"Can't open signed load: {e}") from e


def verify_registrar_signature_and_open(load: Any, registrar_key: Dict[str, Any]) -> Any:
    """Voter-side check of something the registrar signed.

    ``load`` may be a SignedLoad or its JSON form; ``registrar_key`` is the
    published registrar public key JSON.
    """
    if not isinstance(load, SignedLoad):
        load = SignedLoad.from_json(load)
    pkey = signing_public_key(registrar_key, KeyUse.REGISTRAR_PUBLIC)
    return verify_and_open(load, pkey)
