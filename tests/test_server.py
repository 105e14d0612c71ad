import pytest

# If Flask isn't installed in the environment, skip these integration tests.
pytest.importorskip("flask")

from nacl.utils import random

from ballot_registrar import keygen, keys, server, signing


@pytest.fixture
def client(registrar):
    server.setup(registrar)
    return server.app.test_client()


def _voter_body(info=None):
    entry = keygen.generate_entry_key_pair(20, random)
    voting = keygen.generate_voting_key_pair(20, random)
    return {
        "entry_pkey": keys.key_to_json(entry.pkey),
        "voting_pkey": keys.key_to_json(voting.pkey),
        "voter_info": info if info is not None else {"name": "A"},
    }


def _make_token(client):
    rv = client.post("/admin/make-one-token")
    assert rv.status_code == 200
    token = rv.get_json()["registration_ott"]
    assert isinstance(token, str) and len(token) == 30
    return token


def test_full_flow_token_register_publish(client):
    rv = client.get("/registrar-key")
    assert rv.status_code == 200
    registrar_key = rv.get_json()
    assert registrar_key["use"] == "registrar-public-key"

    token = _make_token(client)
    body = _voter_body()
    rv = client.put("/register", json=body, headers={"X-Registration-OTT": token})
    assert rv.status_code == 200
    data = rv.get_json()
    cert = signing.verify_registrar_signature_and_open(data["registration_cert"], registrar_key)
    assert cert["ballot_num"] == 1
    assert cert["voter_info"] == {"name": "A"}

    rv = client.get("/ballots")
    assert rv.status_code == 200
    assert rv.get_json() == [1]

    rv = client.get("/ballots/1")
    assert rv.status_code == 200
    assert rv.get_json() == data["ballot_triplet"]
    triplet = signing.verify_registrar_signature_and_open(rv.get_json(), registrar_key)
    assert triplet == {
        "ballot_num": 1,
        "entry_pkey": body["entry_pkey"],
        "voting_pkey": body["voting_pkey"],
    }


def test_register_without_token_header(client):
    rv = client.put("/register", json=_voter_body())
    assert rv.status_code == 403


def test_register_with_used_token(client):
    token = _make_token(client)
    rv = client.put("/register", json=_voter_body(), headers={"X-Registration-OTT": token})
    assert rv.status_code == 200
    rv = client.put("/register", json=_voter_body(), headers={"X-Registration-OTT": token})
    assert rv.status_code == 403
    assert client.get("/ballots").get_json() == [1]


def test_register_with_bad_keys_is_bad_request(client):
    token = _make_token(client)
    body = _voter_body()
    body["entry_pkey"], body["voting_pkey"] = body["voting_pkey"], body["entry_pkey"]
    rv = client.put("/register", json=body, headers={"X-Registration-OTT": token})
    assert rv.status_code == 400
    # token survived the bad request
    body["entry_pkey"], body["voting_pkey"] = body["voting_pkey"], body["entry_pkey"]
    rv = client.put("/register", json=body, headers={"X-Registration-OTT": token})
    assert rv.status_code == 200


def test_register_requires_voter_info_object(client):
    token = _make_token(client)
    body = _voter_body()
    body["voter_info"] = "A"
    rv = client.put("/register", json=body, headers={"X-Registration-OTT": token})
    assert rv.status_code == 400


def test_register_body_too_large(client):
    token = _make_token(client)
    body = _voter_body({"bio": "x" * 4096})
    rv = client.put("/register", json=body, headers={"X-Registration-OTT": token})
    assert rv.status_code == 413


def test_missing_ballot(client):
    assert client.get("/ballots/42").status_code == 404


def test_registrar_key_pair_loaded_from_file(tmp_path):
    import json

    pair = keygen.generate_registrar_key_pair(20, random)
    path = tmp_path / "registrar.json"
    path.write_text(json.dumps(pair.to_json()))
    assert server.load_registrar_key_pair(str(path)) == pair
    fresh = server.load_registrar_key_pair(None)
    assert fresh.pkey.use is keys.KeyUse.REGISTRAR_PUBLIC


def test_lazy_setup_builds_one_registrar_across_threads(monkeypatch):
    import threading
    import time

    monkeypatch.setitem(server._STATE, "initialized", False)
    monkeypatch.setitem(server._STATE, "registrar", None)
    monkeypatch.setattr(server.config, "REGISTRAR_KEY_FILE", None)
    calls = []
    load = server.load_registrar_key_pair

    def slow_load(path):
        calls.append(path)
        time.sleep(0.05)
        return load(path)

    monkeypatch.setattr(server, "load_registrar_key_pair", slow_load)

    n = 8
    barrier = threading.Barrier(n)
    seen = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        reg = server._registrar()
        with lock:
            seen.append(reg)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(seen) == n
    assert all(reg is seen[0] for reg in seen)
