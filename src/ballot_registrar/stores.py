"""Admission-token store and ballot ledger.

The registrar only talks to the two protocols below. The in-memory classes
satisfy their atomicity contracts with a lock and are what the server and the
tests use; a deployment can swap in a transactional store with the same
methods.
"""

from __future__ import annotations

import base64
import logging
import math
import secrets
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol

from .errors import DuplicateBallotNumber
from .signing import SignedLoad


logger = logging.getLogger(__name__)


class AdmissionTokenStore(Protocol):
    def issue(self, ttl_ms: int, length: int) -> str:
        ...

    def consume(self, token: str) -> bool:
        """True iff ``token`` existed and was unexpired; removes it atomically."""
        ...


class BallotLedger(Protocol):
    def next_number(self) -> int:
        ...

    def put(self, ballot_num: int, signed_triplet: SignedLoad) -> None:
        ...

    def get(self, ballot_num: int) -> Optional[SignedLoad]:
        ...

    def list(self) -> List[int]:
        ...


def random_b64_string(length: int) -> str:
    """``length`` base64 characters drawn from the OS CSPRNG."""
    nbytes = math.ceil(length * 3 / 4)
    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")[:length]


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryTokenStore:
    """Single-use registration tokens mapped to their expiry (unix millis)."""

    def __init__(self, clock_ms: Callable[[], int] = _now_ms):
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._unused: Dict[str, int] = {}

    def issue(self, ttl_ms: int, length: int) -> str:
        if length < 1:
            raise ValueError("token length must be positive")
        with self._lock:
            now = self._clock_ms()
            purged = self._drop_expired(now)
            good_till = now + ttl_ms
            token = random_b64_string(length)
            while token in self._unused:
                token = random_b64_string(length)
            self._unused[token] = good_till
        if purged:
            logger.debug("purged %d expired registration tokens", purged)
        logger.info("issued registration token, valid for %d ms", ttl_ms)
        return token

    def consume(self, token: str) -> bool:
        with self._lock:
            good_till = self._unused.pop(token, None)
            now = self._clock_ms()
        if good_till is None:
            return False
        return now <= good_till

    def _drop_expired(self, now: int) -> int:
        # caller holds self._lock
        stale = [t for t, good_till in self._unused.items() if good_till < now]
        for t in stale:
            del self._unused[t]
        return len(stale)

    def purge_expired(self) -> int:
        with self._lock:
            purged = self._drop_expired(self._clock_ms())
        if purged:
            logger.debug("purged %d expired registration tokens", purged)
        return purged

    def __len__(self) -> int:
        with self._lock:
            return len(self._unused)


class InMemoryBallotLedger:
    """Append-only map of ballot number -> signed ballot triplet."""

    def __init__(self, first_number: int = 1):
        self._lock = threading.Lock()
        self._next = first_number
        self._entries: Dict[int, SignedLoad] = {}

    def next_number(self) -> int:
        with self._lock:
            num = self._next
            self._next += 1
            return num

    def put(self, ballot_num: int, signed_triplet: SignedLoad) -> None:
        with self._lock:
            if ballot_num in self._entries:
                raise DuplicateBallotNumber(ballot_num)
            self._entries[ballot_num] = signed_triplet

    def get(self, ballot_num: int) -> Optional[SignedLoad]:
        with self._lock:
            return self._entries.get(ballot_num)

    def list(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)
