import os
import sys

import pytest


# Ensure repository src directory is on sys.path for tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from nacl.utils import random  # noqa: E402

from ballot_registrar import keygen, protocol, stores  # noqa: E402


@pytest.fixture
def registrar_pair():
    return keygen.generate_registrar_key_pair(20, random)


@pytest.fixture
def ledger():
    return stores.InMemoryBallotLedger()


@pytest.fixture
def tokens():
    return stores.InMemoryTokenStore()


@pytest.fixture
def registrar(registrar_pair, tokens, ledger):
    return protocol.Registrar(
        name="test-registrar",
        sign_key=registrar_pair.skey,
        tokens=tokens,
        ledger=ledger,
        pkey=registrar_pair.pkey,
    )
