import json

import pytest
import requests

from ballot_registrar import cli, server
from ballot_registrar.client import RegistrarClient
from ballot_registrar.errors import NotAuthorized


BASE = "http://registrar.test"


class FlaskResponse:
    def __init__(self, rv):
        self._rv = rv
        self.status_code = rv.status_code
        self.reason = rv.status
        self.text = rv.get_data(as_text=True)

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} {self.reason}")


class FlaskSession:
    """Routes requests.Session style calls into the Flask test client."""

    def __init__(self, test_client):
        self.c = test_client

    def _path(self, url):
        assert url.startswith(BASE)
        return url[len(BASE):]

    def get(self, url, timeout=None):
        return FlaskResponse(self.c.get(self._path(url)))

    def post(self, url, timeout=None):
        return FlaskResponse(self.c.post(self._path(url)))

    def put(self, url, json=None, headers=None, timeout=None):
        return FlaskResponse(self.c.put(self._path(url), json=json, headers=headers))


@pytest.fixture
def api(registrar):
    server.setup(registrar)
    c = RegistrarClient(BASE)
    c.session = FlaskSession(server.app.test_client())
    return c


def _keygen(capsys, role, path):
    assert cli.main(["keygen", "--role", role]) == 0
    out = capsys.readouterr().out
    path.write_text(out)
    return json.loads(out)


def test_keygen_prints_pair(capsys, tmp_path):
    pair = _keygen(capsys, "voting", tmp_path / "v.json")
    assert pair["pkey"]["use"] == "voting-public-key"
    assert pair["skey"]["use"] == "voting-secret-key"
    assert pair["pkey"]["kid"] == pair["skey"]["kid"]


def test_encrypt_and_decrypt_vote_commands(capsys, tmp_path):
    voting = tmp_path / "voting.json"
    main = tmp_path / "main.json"
    _keygen(capsys, "voting", voting)
    _keygen(capsys, "main-voting", main)

    args = ["--ballot", "4", "--voter-key", str(voting), "--main-key", str(main)]
    assert cli.main(["encrypt-vote", "--vote", '{"choice": "yes"}'] + args) == 0
    cipher = capsys.readouterr().out.strip()

    assert cli.main(["decrypt-vote", "--cipher", cipher] + args) == 0
    assert json.loads(capsys.readouterr().out) == {"choice": "yes"}

    wrong = ["--ballot", "5"] + args[2:]
    assert cli.main(["decrypt-vote", "--cipher", cipher] + wrong) == 1


def test_client_registration_flow(api, tmp_path):
    from nacl.utils import random

    from ballot_registrar import keygen, keys, signing

    entry = keygen.generate_entry_key_pair(20, random)
    voting = keygen.generate_voting_key_pair(20, random)
    token = api.make_token()
    res = api.register(token, keys.key_to_json(entry.pkey), keys.key_to_json(voting.pkey), {"name": "A"})
    reg_key = api.registrar_key()
    cert = signing.verify_registrar_signature_and_open(res["registration_cert"], reg_key)
    assert cert["ballot_num"] == 1
    assert api.list_ballots() == [1]
    assert api.get_ballot(1) == res["ballot_triplet"]
    assert api.get_ballot(2) is None

    with pytest.raises(NotAuthorized):
        api.register(token, keys.key_to_json(entry.pkey), keys.key_to_json(voting.pkey), {})


def test_client_bad_request_raises_http_error(api):
    token = api.make_token()
    with pytest.raises(requests.HTTPError):
        api.register(token, {"k": "x"}, {"k": "y"}, {})


def test_decrypt_vote_with_bad_base64_fails_cleanly(capsys, tmp_path):
    voting = tmp_path / "voting.json"
    main = tmp_path / "main.json"
    _keygen(capsys, "voting", voting)
    _keygen(capsys, "main-voting", main)
    args = ["--ballot", "1", "--voter-key", str(voting), "--main-key", str(main)]
    assert cli.main(["decrypt-vote", "--cipher", "not-base64!"] + args) == 1


def test_unreachable_registrar_fails_cleanly():
    assert cli.main(["--url", "http://127.0.0.1:9", "list"]) == 1
