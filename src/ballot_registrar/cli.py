"""Command line front end for the registrar.

Usage examples:
    ballot-registrar keygen --role voting > voting.json
    ballot-registrar make-token
    ballot-registrar register --token <ott> --entry-key entry.json \\
        --voting-key voting.json --info '{"name": "A"}'
    ballot-registrar list
    ballot-registrar get 1
    ballot-registrar encrypt-vote --ballot 1 --vote '{"choice": "yes"}' \\
        --voter-key voting.json --main-key main.json
    ballot-registrar serve
"""

from __future__ import annotations

import argparse
import base64
import binascii
import json
import logging
import sys
from typing import Any, Dict

import requests
from nacl.utils import random as nacl_random

from . import config
from .client import RegistrarClient
from .errors import RegistrarError
from .keygen import GENERATORS
from .vote_cipher import decrypt_vote, encrypt_vote


logger = logging.getLogger(__name__)


def _print(obj: Any):
    print(json.dumps(obj, indent=2, sort_keys=True))


def _load_half(path: str, half: str) -> Dict[str, Any]:
    """Read a key file holding either a single JSON key or a {pkey, skey} pair."""
    with open(path, "r", encoding="utf-8") as f:
        obj = json.load(f)
    if isinstance(obj, dict) and half in obj:
        return obj[half]
    return obj


def keygen(role: str, kid_len: int):
    pair = GENERATORS[role](kid_len, nacl_random)
    _print(pair.to_json())


def register(client: RegistrarClient, args: argparse.Namespace):
    res = client.register(
        args.token,
        _load_half(args.entry_key, "pkey"),
        _load_half(args.voting_key, "pkey"),
        json.loads(args.info),
    )
    _print({name: load.to_json() for name, load in res.items()})


def encrypt(args: argparse.Namespace):
    cipher = encrypt_vote(
        args.ballot,
        json.loads(args.vote),
        _load_half(args.voter_key, "skey"),
        _load_half(args.main_key, "pkey"),
        nacl_random,
    )
    print(base64.b64encode(cipher).decode("ascii"))


def decrypt(args: argparse.Namespace):
    vote = decrypt_vote(
        args.ballot,
        base64.b64decode(args.cipher, validate=True),
        _load_half(args.voter_key, "pkey"),
        _load_half(args.main_key, "skey"),
    )
    _print(vote)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ballot-registrar")
    p.add_argument("--url", default=config.SERVER_URL, help="registrar base url")
    sub = p.add_subparsers(dest="cmd")

    k = sub.add_parser("keygen")
    k.add_argument("--role", choices=sorted(GENERATORS), required=True)
    k.add_argument("--kid-len", type=int, default=config.REGISTRAR_KID_LEN)

    sub.add_parser("registrar-key")
    sub.add_parser("make-token")

    r = sub.add_parser("register")
    r.add_argument("--token", required=True)
    r.add_argument("--entry-key", required=True)
    r.add_argument("--voting-key", required=True)
    r.add_argument("--info", default="{}")

    sub.add_parser("list")
    g = sub.add_parser("get")
    g.add_argument("ballot", type=int)

    for name in ("encrypt-vote", "decrypt-vote"):
        v = sub.add_parser(name)
        v.add_argument("--ballot", type=int, required=True)
        v.add_argument("--voter-key", required=True)
        v.add_argument("--main-key", required=True)
        if name == "encrypt-vote":
            v.add_argument("--vote", required=True)
        else:
            v.add_argument("--cipher", required=True)

    sub.add_parser("serve")
    return p


def main(argv=None) -> int:
    logging.basicConfig(format=config.LOG_FORMAT, level=config.LOG_LEVEL)
    p = build_parser()
    args = p.parse_args(argv)
    client = RegistrarClient(args.url)
    try:
        if args.cmd == "keygen":
            keygen(args.role, args.kid_len)
        elif args.cmd == "registrar-key":
            _print(client.registrar_key())
        elif args.cmd == "make-token":
            print(client.make_token())
        elif args.cmd == "register":
            register(client, args)
        elif args.cmd == "list":
            _print(client.list_ballots())
        elif args.cmd == "get":
            load = client.get_ballot(args.ballot)
            if load is None:
                print(f"ballot {args.ballot} not found", file=sys.stderr)
                return 1
            _print(load.to_json())
        elif args.cmd == "encrypt-vote":
            encrypt(args)
        elif args.cmd == "decrypt-vote":
            decrypt(args)
        elif args.cmd == "serve":
            from .server import main as serve

            serve()
        else:
            p.print_help()
            return 2
    except (RegistrarError, binascii.Error, requests.RequestException) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
