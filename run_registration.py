"""Reference runner that walks through registration and vote encryption in-process.

Run this script from the repository root (with the package installed) to see
tokens issued, voters registered, triplets published and votes sealed.
"""

import hashlib

from nacl.utils import random

from ballot_registrar import keygen, protocol, signing, stores, vote_cipher
from ballot_registrar.errors import BallotNumberMismatch
from ballot_registrar.keys import key_to_json


KID_LEN = 20


def _print_heading(msg: str):
    print()
    print(msg)


def _print_kv(key: str, value: str):
    print(f"  {key}: {value}")


def main():
    _print_heading("[Setup] registrar and main voting keys")
    registrar_pair = keygen.generate_registrar_key_pair(KID_LEN, random)
    main_pair = keygen.generate_main_voting_key_pair(KID_LEN, random)
    registrar = protocol.Registrar(
        name="demo-registrar",
        sign_key=registrar_pair.skey,
        tokens=stores.InMemoryTokenStore(),
        ledger=stores.InMemoryBallotLedger(),
        pkey=registrar_pair.pkey,
    )
    _print_kv("registrar key", registrar_pair.pkey.kid)
    _print_kv("main voting key", main_pair.pkey.kid)

    _print_heading("[Registration] one token per voter")
    voters = {}
    for name in ("Alice", "Bob"):
        token = registrar.make_token(30 * 60 * 1000, 30)
        entry = keygen.generate_entry_key_pair(KID_LEN, random)
        voting = keygen.generate_voting_key_pair(KID_LEN, random)
        res = registrar.register(
            token, key_to_json(entry.pkey), key_to_json(voting.pkey), {"name": name}
        ).unwrap()
        voters[name] = (res.cert.ballot_num, voting)
        _print_kv(f"registered {name}", f"ballot {res.cert.ballot_num}")

        # token is single use
        again = registrar.register(
            token, key_to_json(entry.pkey), key_to_json(voting.pkey), {"name": name}
        )
        _print_kv("token reuse", type(again).__name__)

    _print_heading("[Publication] ballot triplets")
    registrar_key = registrar.public_key_json()
    for num in registrar.list_ballots():
        triplet = signing.verify_registrar_signature_and_open(
            registrar.get_ballot(num), registrar_key
        )
        _print_kv(f"ballot {num}", ", ".join(sorted(triplet.keys())))

    _print_heading("[Voting] ballot-bound encryption")
    main_pkey = key_to_json(main_pair.pkey)
    main_skey = key_to_json(main_pair.skey)
    for name, (num, voting) in voters.items():
        choice = "yes" if name == "Alice" else "no"
        cipher = vote_cipher.encrypt_vote(
            num, {"choice": choice}, key_to_json(voting.skey), main_pkey, random
        )
        _print_kv(f"cipher for ballot {num}", hashlib.sha256(cipher).hexdigest()[:8])
        vote = vote_cipher.decrypt_vote(num, cipher, key_to_json(voting.pkey), main_skey)
        _print_kv(f"opened ballot {num}", vote["choice"])
        try:
            vote_cipher.decrypt_vote(num + 100, cipher, key_to_json(voting.pkey), main_skey)
        except BallotNumberMismatch:
            _print_kv(f"opened as ballot {num + 100}", "refused")


if __name__ == "__main__":
    main()
