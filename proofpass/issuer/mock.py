from __future__ import annotations

import base64
import hashlib
import itertools
import json
import logging
import threading
from collections import defaultdict
from typing import Iterable, Optional

from proofpass.issuer.base import Content, CredentialIssuer, IssuerError

logger = logging.getLogger(__name__)


def content_id_for(content: Content) -> str:
    """CIDv1-shaped id derived from the content, so equal content gets equal ids."""
    if isinstance(content, bytes):
        raw = content
    else:
        raw = json.dumps(content, sort_keys=True, separators=(",", ":")).encode("utf-8")
    digest = hashlib.sha256(raw).digest()
    return "bafybei" + base64.b32encode(digest).decode("ascii").lower().rstrip("=")


class MockCredentialIssuer(CredentialIssuer):
    """
    Deterministic in-process issuer.

    Collections are numbered ``0.0.1000001``, ``0.0.1000002``... and serials
    count up from 1 inside each collection. ``unassociated_wallets`` lists
    recipients whose transfers are refused, ``fail_on`` names operations that
    raise ``IssuerError`` (e.g. ``{"mint"}``).
    """

    def __init__(
        self,
        unassociated_wallets: Iterable[str] = (),
        fail_on: Iterable[str] = (),
    ):
        self.unassociated_wallets = set(unassociated_wallets)
        self.fail_on = set(fail_on)
        self._lock = threading.Lock()
        self._collection_numbers = itertools.count(1000001)
        self._serials: dict[str, int] = defaultdict(int)
        self.collections: dict[str, tuple[str, str]] = {}
        self.contents: dict[str, Content] = {}
        self.minted: list[tuple[str, str, str]] = []
        self.owners: dict[tuple[str, str], Optional[str]] = {}

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise IssuerError(f"simulated {operation} failure")

    def create_collection(self, name: str, symbol: str) -> str:
        self._maybe_fail("create_collection")
        with self._lock:
            collection_id = f"0.0.{next(self._collection_numbers)}"
            self.collections[collection_id] = (name, symbol)
        logger.info("Created collection %s (%s)", collection_id, symbol)
        return collection_id

    def upload_content(self, content: Content) -> str:
        self._maybe_fail("upload_content")
        cid = content_id_for(content)
        with self._lock:
            self.contents[cid] = content
        return cid

    def mint(self, collection_id: str, content_ref: str) -> str:
        self._maybe_fail("mint")
        with self._lock:
            if collection_id not in self.collections:
                raise IssuerError(f"unknown collection {collection_id}")
            self._serials[collection_id] += 1
            serial = str(self._serials[collection_id])
            self.minted.append((collection_id, serial, content_ref))
            self.owners[(collection_id, serial)] = None
        return serial

    def transfer(self, collection_id: str, serial: str, recipient: str) -> bool:
        self._maybe_fail("transfer")
        with self._lock:
            if (collection_id, serial) not in self.owners:
                raise IssuerError(f"serial {serial} of {collection_id} was never minted")
            if recipient in self.unassociated_wallets:
                return False
            self.owners[(collection_id, serial)] = recipient
        return True
