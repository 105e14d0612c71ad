"""Vote encryption bound to a ballot number.

Votes are sealed with NaCl box (Curve25519, XSalsa20, Poly1305) from the
voter's voting secret key to the main voting public key. The first four nonce
bytes carry the ballot number big-endian, so a cipher cast for one ballot is
refused outright when opened against another.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict

from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey

from .errors import (
    BallotNumberMismatch,
    BallotNumberOutOfRange,
    DecryptionFailed,
    MalformedVote,
)
from .keys import KeyUse, box_key


NONCE_LENGTH = Box.NONCE_SIZE
BALLOT_NUM_BYTES = 4


def ballot_num_prefix(ballot_num: int) -> bytes:
    if ballot_num < 0 or ballot_num > 0xFFFFFFFF:
        raise BallotNumberOutOfRange(ballot_num)
    return ballot_num.to_bytes(BALLOT_NUM_BYTES, "big")


def encrypt_vote(
    ballot_num: int,
    vote: Any,
    voter_key: Dict[str, Any],
    main_key: Dict[str, Any],
    random: Callable[[int], bytes],
) -> bytes:
    """Encrypt ``vote`` for ``ballot_num``; returns nonce || box cipher."""
    prefix = ballot_num_prefix(ballot_num)
    vote_bytes = json.dumps(vote, separators=(",", ":")).encode("utf-8")
    skey = box_key(voter_key, KeyUse.VOTING_SECRET)
    pkey = box_key(main_key, KeyUse.MAIN_VOTING_PUBLIC)
    nonce = prefix + random(NONCE_LENGTH)[BALLOT_NUM_BYTES:]
    box = Box(PrivateKey(skey.k), PublicKey(pkey.k))
    return bytes(box.encrypt(vote_bytes, nonce))


def decrypt_vote(
    ballot_num: int,
    cipher: bytes,
    voter_key: Dict[str, Any],
    main_key: Dict[str, Any],
) -> Any:
    """Open a vote cast for ``ballot_num``.

    The nonce prefix is compared before any crypto runs; a mismatch raises
    BallotNumberMismatch. Authentication failure raises DecryptionFailed, and
    plaintext that is not JSON raises MalformedVote.
    """
    prefix = ballot_num_prefix(ballot_num)
    if cipher[:BALLOT_NUM_BYTES] != prefix:
        raise BallotNumberMismatch(
            f"Nonce in vote cipher doesn't match ballot number {ballot_num}"
        )
    skey = box_key(main_key, KeyUse.MAIN_VOTING_SECRET)
    pkey = box_key(voter_key, KeyUse.VOTING_PUBLIC)
    box = Box(PrivateKey(skey.k), PublicKey(pkey.k))
    try:
        vote_bytes = box.decrypt(bytes(cipher))
    except CryptoError:
        raise DecryptionFailed(f"vote cipher for ballot {ballot_num} failed to open") from None
    try:
        return json.loads(vote_bytes.decode("utf-8"))
    except ValueError as e:
        raise MalformedVote(f"Can't open vote from decrypted bytes: {e}") from e
