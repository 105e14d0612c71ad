"""HTTP client for the registrar API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from . import config
from .errors import NotAuthorized
from .signing import SignedLoad


logger = logging.getLogger(__name__)


class RegistrarClient:
    def __init__(self, base_url: str = config.SERVER_URL, timeout: float = config.CLIENT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _check(self, r: requests.Response) -> requests.Response:
        if r.status_code == 403:
            raise NotAuthorized(_error_text(r))
        r.raise_for_status()
        return r

    def registrar_key(self) -> Dict[str, str]:
        r = self.session.get(self._url("/registrar-key"), timeout=self.timeout)
        return self._check(r).json()

    def make_token(self) -> str:
        r = self.session.post(self._url("/admin/make-one-token"), timeout=self.timeout)
        return self._check(r).json()["registration_ott"]

    def register(
        self,
        token: str,
        entry_pkey: Dict[str, Any],
        voting_pkey: Dict[str, Any],
        voter_info: Dict[str, Any],
    ) -> Dict[str, SignedLoad]:
        """PUT /register; returns the signed cert and signed triplet."""
        r = self.session.put(
            self._url("/register"),
            json={"entry_pkey": entry_pkey, "voting_pkey": voting_pkey, "voter_info": voter_info},
            headers={config.REG_OTT_HEADER: token},
            timeout=self.timeout,
        )
        body = self._check(r).json()
        return {
            "registration_cert": SignedLoad.from_json(body["registration_cert"]),
            "ballot_triplet": SignedLoad.from_json(body["ballot_triplet"]),
        }

    def list_ballots(self) -> List[int]:
        r = self.session.get(self._url("/ballots"), timeout=self.timeout)
        return self._check(r).json()

    def get_ballot(self, ballot_num: int) -> Optional[SignedLoad]:
        r = self.session.get(self._url(f"/ballots/{ballot_num}"), timeout=self.timeout)
        if r.status_code == 404:
            return None
        return SignedLoad.from_json(self._check(r).json())


def _error_text(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or r.reason
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return r.reason
