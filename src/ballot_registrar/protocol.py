"""Voter registration.

One registration walks through these steps:

1. Received: the voter's entry and voting public keys are checked.
2. TokenValidated: the one-time token is consumed from the token store.
3. NumberAssigned: the ledger hands out the next ballot number.
4. Signed: the registrar signs the full certificate and the ballot triplet.
5. Published: the signed triplet is appended to the ledger.

A bad token is an expected outcome and comes back as ``Rejected``. Bad keys
raise before the token is touched. Anything failing after step 3 leaves the
number unused for good; numbers are never handed out twice.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import MalformedPayload, NotAuthorized
from .keys import (
    SIGN_ALG,
    SIGN_PUBLIC_KEY_LENGTH,
    SIGN_SECRET_KEY_LENGTH,
    Key,
    KeyUse,
    box_key,
    key_to_json,
)
from .signing import SignedLoad, sign, verify_and_open
from .stores import AdmissionTokenStore, BallotLedger


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BallotTriplet:
    """Public record of a ballot slot; carries nothing that identifies the voter."""

    ballot_num: int
    entry_pkey: Key
    voting_pkey: Key

    def to_json(self) -> Dict[str, Any]:
        return {
            "ballot_num": self.ballot_num,
            "entry_pkey": key_to_json(self.entry_pkey),
            "voting_pkey": key_to_json(self.voting_pkey),
        }

    @classmethod
    def from_json(cls, obj: Any) -> "BallotTriplet":
        if not isinstance(obj, dict) or not isinstance(obj.get("ballot_num"), int):
            raise MalformedPayload("ballot triplet must carry an integer ballot_num")
        return cls(
            ballot_num=obj["ballot_num"],
            entry_pkey=box_key(obj.get("entry_pkey"), KeyUse.ENTRY_PUBLIC),
            voting_pkey=box_key(obj.get("voting_pkey"), KeyUse.VOTING_PUBLIC),
        )


@dataclass(frozen=True)
class RegistrationCert:
    """Full registration record, returned only to the registering voter

    Attributes
    - ballot_num, entry_pkey, voting_pkey: same as in the ballot triplet
    - voter_info: whatever the voter supplied, kept opaque
    - registrar: configured registrar name
    - registered_at: unix seconds
    """

    ballot_num: int
    entry_pkey: Key
    voting_pkey: Key
    voter_info: Any
    registrar: str
    registered_at: int

    def triplet(self) -> BallotTriplet:
        return BallotTriplet(
            ballot_num=self.ballot_num,
            entry_pkey=self.entry_pkey,
            voting_pkey=self.voting_pkey,
        )

    def to_json(self) -> Dict[str, Any]:
        out = self.triplet().to_json()
        out["voter_info"] = self.voter_info
        out["registrar"] = self.registrar
        out["registered_at"] = self.registered_at
        return out

    @classmethod
    def from_json(cls, obj: Any) -> "RegistrationCert":
        t = BallotTriplet.from_json(obj)
        if not isinstance(obj.get("registrar"), str) or not isinstance(
            obj.get("registered_at"), int
        ):
            raise MalformedPayload("registration cert misses registrar or registered_at")
        return cls(
            ballot_num=t.ballot_num,
            entry_pkey=t.entry_pkey,
            voting_pkey=t.voting_pkey,
            voter_info=obj.get("voter_info"),
            registrar=obj["registrar"],
            registered_at=obj["registered_at"],
        )


def sign_ballot_info(
    cert: RegistrationCert, sign_key: Key
) -> Tuple[SignedLoad, SignedLoad]:
    """Sign the full cert and its triplet with the same registrar key.

    Returns (signed_cert, signed_triplet).
    """
    signed_cert = sign(cert.to_json(), sign_key)
    signed_triplet = sign(cert.triplet().to_json(), sign_key)
    return signed_cert, signed_triplet


def open_ballot_triplet(load: SignedLoad, registrar_pkey: Key) -> BallotTriplet:
    return BallotTriplet.from_json(verify_and_open(load, registrar_pkey))


def open_registration_cert(load: SignedLoad, registrar_pkey: Key) -> RegistrationCert:
    return RegistrationCert.from_json(verify_and_open(load, registrar_pkey))


@dataclass(frozen=True)
class Registered:
    cert: RegistrationCert
    signed_cert: SignedLoad
    signed_triplet: SignedLoad

    def unwrap(self) -> "Registered":
        return self


@dataclass(frozen=True)
class Rejected:
    error: NotAuthorized

    def unwrap(self) -> Registered:
        raise self.error


RegistrationResult = Union[Registered, Rejected]


class Registrar:
    """Issues registration certs and publishes ballot triplets.

    ``sign_key`` is the registrar's secret signing key; ``pkey`` (optional)
    is its public half, published so voters can check signatures.
    """

    def __init__(
        self,
        name: str,
        sign_key: Key,
        tokens: AdmissionTokenStore,
        ledger: BallotLedger,
        pkey: Optional[Key] = None,
        clock: Callable[[], float] = time.time,
    ):
        if sign_key.use is not KeyUse.REGISTRAR_SECRET:
            raise ValueError(f"registrar needs a {KeyUse.REGISTRAR_SECRET.value}")
        if sign_key.alg != SIGN_ALG or len(sign_key.k) != SIGN_SECRET_KEY_LENGTH:
            raise ValueError(f"registrar key {sign_key.kid} is not a {SIGN_ALG} secret key")
        if pkey is not None and (
            pkey.use is not KeyUse.REGISTRAR_PUBLIC
            or pkey.alg != SIGN_ALG
            or pkey.kid != sign_key.kid
            or sign_key.k[SIGN_SECRET_KEY_LENGTH - SIGN_PUBLIC_KEY_LENGTH:] != pkey.k
        ):
            raise ValueError(
                f"public key {pkey.kid} is not the pair of registrar key {sign_key.kid}"
            )
        self.name = name
        self._sign_key = sign_key
        self._pkey = pkey
        self._tokens = tokens
        self._ledger = ledger
        self._clock = clock

    def make_token(self, ttl_ms: int, length: int) -> str:
        return self._tokens.issue(ttl_ms, length)

    def register(
        self,
        token: str,
        entry_pkey: Dict[str, Any],
        voting_pkey: Dict[str, Any],
        voter_info: Any,
    ) -> RegistrationResult:
        entry = box_key(entry_pkey, KeyUse.ENTRY_PUBLIC)
        voting = box_key(voting_pkey, KeyUse.VOTING_PUBLIC)

        if not self._tokens.consume(token):
            logger.warning("registration rejected: invalid one time token")
            return Rejected(NotAuthorized("Invalid one time token"))

        ballot_num = self._ledger.next_number()
        cert = RegistrationCert(
            ballot_num=ballot_num,
            entry_pkey=entry,
            voting_pkey=voting,
            voter_info=voter_info,
            registrar=self.name,
            registered_at=int(self._clock()),
        )
        try:
            signed_cert, signed_triplet = sign_ballot_info(cert, self._sign_key)
            self._ledger.put(ballot_num, signed_triplet)
        except Exception:
            logger.error("ballot %d abandoned, registration failed", ballot_num)
            raise
        logger.info("registered ballot %d (entry key %s)", ballot_num, entry.kid)
        return Registered(cert=cert, signed_cert=signed_cert, signed_triplet=signed_triplet)

    def public_key_json(self) -> Dict[str, str]:
        if self._pkey is None:
            raise LookupError("registrar public key was not provided")
        return key_to_json(self._pkey)

    def get_ballot(self, ballot_num: int) -> Optional[SignedLoad]:
        return self._ledger.get(ballot_num)

    def list_ballots(self) -> List[int]:
        return self._ledger.list()
