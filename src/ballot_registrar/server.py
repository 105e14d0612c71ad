"""Flask API for the registrar.

Endpoints:
- GET /registrar-key -> registrar public key JSON
- POST /admin/make-one-token -> {"registration_ott": "..."}
- PUT /register (header X-Registration-OTT) with
  {"entry_pkey": {...}, "voting_pkey": {...}, "voter_info": {...}}
  -> {"registration_cert": <signed load>, "ballot_triplet": <signed load>}
- GET /ballots -> list of published ballot numbers
- GET /ballots/<n> -> signed ballot triplet
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from nacl.utils import random as nacl_random
from werkzeug.exceptions import HTTPException

from . import config
from .errors import KeyFormatError
from .keygen import KeyPair, generate_registrar_key_pair, registrar_key_pair_from_json
from .protocol import Registrar, Rejected
from .stores import InMemoryBallotLedger, InMemoryTokenStore


logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.REGISTRATION_BODY_LIMIT

# Registrar service state, filled by setup()
_STATE: Dict[str, Any] = {
    "initialized": False,
    "registrar": None,
}
_SETUP_LOCK = threading.Lock()


def load_registrar_key_pair(path: Optional[str]) -> KeyPair:
    if path is None:
        logger.info("no registrar key file configured, generating a fresh key pair")
        return generate_registrar_key_pair(config.REGISTRAR_KID_LEN, nacl_random)
    with open(path, "r", encoding="utf-8") as f:
        pair = registrar_key_pair_from_json(json.load(f))
    logger.info("loaded registrar key %s from %s", pair.pkey.kid, path)
    return pair


def _install(registrar: Optional[Registrar]) -> Registrar:
    # caller holds _SETUP_LOCK
    if registrar is None:
        pair = load_registrar_key_pair(config.REGISTRAR_KEY_FILE)
        registrar = Registrar(
            name=config.REGISTRAR_NAME,
            sign_key=pair.skey,
            tokens=InMemoryTokenStore(),
            ledger=InMemoryBallotLedger(),
            pkey=pair.pkey,
        )
    _STATE["registrar"] = registrar
    _STATE["initialized"] = True
    return registrar


def setup(registrar: Optional[Registrar] = None) -> Registrar:
    """Install the registrar used by the routes, building one from config if not given."""
    with _SETUP_LOCK:
        return _install(registrar)


def _registrar() -> Registrar:
    if not _STATE["initialized"]:
        with _SETUP_LOCK:
            # re-check under the lock
            if not _STATE["initialized"]:
                _install(None)
    return _STATE["registrar"]


@app.route("/registrar-key", methods=["GET"])
def registrar_key():
    return jsonify(_registrar().public_key_json())


@app.route("/admin/make-one-token", methods=["POST"])
def make_registration_ott():
    token = _registrar().make_token(config.OTT_TIMEOUT_MS, config.OTT_LENGTH)
    return jsonify({"registration_ott": token})


@app.route("/register", methods=["PUT"])
def register_voter():
    """Register a voter against a one time token.

    403 when the token header is missing or the token is refused, 400 when
    the body or the supplied keys are malformed.
    """
    token = request.headers.get(config.REG_OTT_HEADER)
    if token is None:
        return jsonify({"error": "Missing one time token"}), 403
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "body must be a JSON object"}), 400
    voter_info = data.get("voter_info")
    if not isinstance(voter_info, dict):
        return jsonify({"error": "missing or invalid voter_info"}), 400
    try:
        result = _registrar().register(
            token, data.get("entry_pkey"), data.get("voting_pkey"), voter_info
        )
    except KeyFormatError as e:
        return jsonify({"error": str(e)}), 400
    if isinstance(result, Rejected):
        return jsonify({"error": "Invalid one time token"}), 403
    return jsonify(
        {
            "registration_cert": result.signed_cert.to_json(),
            "ballot_triplet": result.signed_triplet.to_json(),
        }
    )


@app.route("/ballots", methods=["GET"])
def list_ballots():
    return jsonify(_registrar().list_ballots())


@app.route("/ballots/<int:ballot_num>", methods=["GET"])
def get_ballot(ballot_num: int):
    load = _registrar().get_ballot(ballot_num)
    if load is None:
        return jsonify({"error": "Ballot not found"}), 404
    return jsonify(load.to_json())


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception(
        "error in registrar app, when handling %s request to %s", request.method, request.path
    )
    return jsonify({"error": "Internal Server Error"}), 500


def main():
    logging.basicConfig(format=config.LOG_FORMAT, level=config.LOG_LEVEL)
    setup()
    logger.info("starting registrar %s on %s:%d", config.REGISTRAR_NAME, config.SERVER_HOST, config.SERVER_PORT)
    app.run(host=config.SERVER_HOST, port=config.SERVER_PORT)


if __name__ == "__main__":
    main()
