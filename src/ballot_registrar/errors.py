"""Exception types raised by the registrar core.

Key and envelope problems, token rejection and vote-cipher failures each get
their own class so callers (the HTTP layer, the CLI) can map them to a status
or a message without string matching.
"""

from __future__ import annotations


class RegistrarError(Exception):
    """Base class for every error raised by this package."""


## --- keys ----------------------------------------------------------------


class KeyFormatError(RegistrarError):
    pass


class MalformedKey(KeyFormatError):
    pass


class UseMismatch(KeyFormatError):
    def __init__(self, kid: str, expected: str, actual: str):
        self.kid = kid
        self.expected = expected
        self.actual = actual
        super().__init__(f"Key {kid} has incorrect use '{actual}', instead of '{expected}'")


class AlgMismatch(KeyFormatError):
    def __init__(self, kid: str, expected: str, actual: str):
        self.kid = kid
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Key {kid}, should be used with unsupported algorithm '{actual}'"
        )


class BadKeyLength(KeyFormatError):
    def __init__(self, kid: str, expected: int, actual: int):
        self.kid = kid
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Key {kid} has a wrong number of bytes: {actual} instead of {expected}"
        )


## --- signed loads --------------------------------------------------------


class KeyIdentityMismatch(RegistrarError):
    pass


class SignatureInvalid(RegistrarError):
    pass


class MalformedPayload(RegistrarError):
    pass


## --- registration --------------------------------------------------------


class NotAuthorized(RegistrarError, PermissionError):
    """Registration token is unknown, expired or already used."""


class DuplicateBallotNumber(RegistrarError):
    """Ledger already holds an entry under this number; never expected."""

    def __init__(self, ballot_num: int):
        self.ballot_num = ballot_num
        super().__init__(f"ballot {ballot_num} is already published")


class StoreUnavailable(RegistrarError):
    pass


## --- votes ---------------------------------------------------------------


class VoteError(RegistrarError):
    pass


class BallotNumberOutOfRange(VoteError, ValueError):
    def __init__(self, ballot_num: int):
        self.ballot_num = ballot_num
        super().__init__(
            f"Number {ballot_num} is outside of unsigned 32 bit integer range"
        )


class BallotNumberMismatch(VoteError):
    pass


class DecryptionFailed(VoteError):
    pass


class MalformedVote(VoteError):
    pass
