"""Key pair generation for every protocol role.

All generators take the random source as an explicit ``random(n) -> bytes``
argument (``nacl.utils.random`` in production). Nothing here falls back to a
process-wide default and nothing retries: whatever the source raises
propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict

from nacl import bindings
from nacl.public import PrivateKey
from nacl.signing import SigningKey

from .errors import MalformedKey
from .keys import (
    BOX_ALG,
    BOX_KEY_LENGTH,
    KEY_USE_ALG,
    SIGN_ALG,
    SIGN_PUBLIC_KEY_LENGTH,
    SIGN_SECRET_KEY_LENGTH,
    Key,
    KeyUse,
    b64_encode,
    key_from_json,
    key_to_json,
)


RandomSource = Callable[[int], bytes]


@dataclass(frozen=True)
class KeyPair:
    """Public and secret halves sharing kid and alg

    Attributes
    - pkey: public half
    - skey: secret half
    """

    pkey: Key
    skey: Key

    def to_json(self) -> Dict[str, Dict[str, str]]:
        return {"pkey": key_to_json(self.pkey), "skey": key_to_json(self.skey)}


def _new_kid(kid_len: int, random: RandomSource) -> str:
    return b64_encode(random(kid_len))


def _check_roles(pub_use: KeyUse, sec_use: KeyUse, alg: str):
    for use in (pub_use, sec_use):
        if KEY_USE_ALG[use] != alg:
            raise ValueError(f"{use.value} is not a {alg} key role")


def generate_signing_pair(
    pub_use: KeyUse, sec_use: KeyUse, kid_len: int, random: RandomSource
) -> KeyPair:
    _check_roles(pub_use, sec_use, SIGN_ALG)
    seed = random(bindings.crypto_sign_SEEDBYTES)
    signing_key = SigningKey(seed)
    pk = signing_key.verify_key.encode()
    kid = _new_kid(kid_len, random)
    return KeyPair(
        pkey=Key(k=pk, kid=kid, use=pub_use, alg=SIGN_ALG),
        skey=Key(k=seed + pk, kid=kid, use=sec_use, alg=SIGN_ALG),
    )


def generate_encrypting_pair(
    pub_use: KeyUse, sec_use: KeyUse, kid_len: int, random: RandomSource
) -> KeyPair:
    _check_roles(pub_use, sec_use, BOX_ALG)
    sk = random(BOX_KEY_LENGTH)
    pk = PrivateKey(sk).public_key.encode()
    kid = _new_kid(kid_len, random)
    return KeyPair(
        pkey=Key(k=pk, kid=kid, use=pub_use, alg=BOX_ALG),
        skey=Key(k=sk, kid=kid, use=sec_use, alg=BOX_ALG),
    )


def generate_registrar_key_pair(kid_len: int, random: RandomSource) -> KeyPair:
    return generate_signing_pair(
        KeyUse.REGISTRAR_PUBLIC, KeyUse.REGISTRAR_SECRET, kid_len, random
    )


def generate_entry_key_pair(kid_len: int, random: RandomSource) -> KeyPair:
    return generate_encrypting_pair(
        KeyUse.ENTRY_PUBLIC, KeyUse.ENTRY_SECRET, kid_len, random
    )


def generate_voting_key_pair(kid_len: int, random: RandomSource) -> KeyPair:
    return generate_encrypting_pair(
        KeyUse.VOTING_PUBLIC, KeyUse.VOTING_SECRET, kid_len, random
    )


def generate_main_voting_key_pair(kid_len: int, random: RandomSource) -> KeyPair:
    return generate_encrypting_pair(
        KeyUse.MAIN_VOTING_PUBLIC, KeyUse.MAIN_VOTING_SECRET, kid_len, random
    )


GENERATORS: Dict[str, Callable[[int, RandomSource], KeyPair]] = {
    "registrar": generate_registrar_key_pair,
    "entry": generate_entry_key_pair,
    "voting": generate_voting_key_pair,
    "main-voting": generate_main_voting_key_pair,
}


def key_pair_from_json(
    obj: Any,
    pub_use: KeyUse,
    sec_use: KeyUse,
    alg: str,
    pub_len: int,
    sec_len: int,
) -> KeyPair:
    """Load a persisted ``{"pkey": ..., "skey": ...}`` pair and check it holds together."""
    if not isinstance(obj, dict):
        raise MalformedKey("key pair must be an object with pkey and skey")
    pkey = key_from_json(obj.get("pkey"), pub_use, alg, pub_len)
    skey = key_from_json(obj.get("skey"), sec_use, alg, sec_len)
    if pkey.kid != skey.kid:
        raise MalformedKey(f"key pair halves have different ids: {pkey.kid} and {skey.kid}")
    return KeyPair(pkey=pkey, skey=skey)


def registrar_key_pair_from_json(obj: Any) -> KeyPair:
    pair = key_pair_from_json(
        obj,
        KeyUse.REGISTRAR_PUBLIC,
        KeyUse.REGISTRAR_SECRET,
        SIGN_ALG,
        SIGN_PUBLIC_KEY_LENGTH,
        SIGN_SECRET_KEY_LENGTH,
    )
    if pair.skey.k[bindings.crypto_sign_SEEDBYTES:] != pair.pkey.k:
        raise MalformedKey(f"registrar key pair {pair.pkey.kid} halves do not match")
    return pair
