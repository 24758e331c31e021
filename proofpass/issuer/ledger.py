"""HTTP client for a ledger gateway plus a Pinata compatible pinning service."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from proofpass.issuer.base import Content, CredentialIssuer, IssuerError

logger = logging.getLogger(__name__)


class LedgerCredentialIssuer(CredentialIssuer):
    """
    Talks to two services:

    * the ledger gateway, which owns collections, minting and transfers
      (``/api/v1/collections...``)
    * the pinning service, which stores metadata JSON and images and answers
      with the content hash (``/pinning/pinJSONToIPFS``, ``/pinning/pinFileToIPFS``)

    Every transport error, timeout and non-2xx answer becomes ``IssuerError``,
    except a transfer the ledger explicitly refuses, which returns ``False``.
    """

    def __init__(
        self,
        ledger_url: str,
        pinning_url: str,
        ledger_token: str = "",
        pinning_token: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._ledger = httpx.Client(
            base_url=ledger_url,
            headers=_auth_headers(ledger_token),
            timeout=timeout,
            transport=transport,
        )
        self._pinning = httpx.Client(
            base_url=pinning_url,
            headers=_auth_headers(pinning_token),
            timeout=timeout,
            transport=transport,
        )

    def _post(self, client: httpx.Client, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return client.post(url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Request to %s%s failed: %s", client.base_url, url, e)
            raise IssuerError(f"request to {url} failed: {e}") from e

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPStatusError, json.JSONDecodeError) as e:
            raise IssuerError(f"unexpected answer from {response.request.url}: {e}") from e

    def create_collection(self, name: str, symbol: str) -> str:
        response = self._post(
            self._ledger,
            "/api/v1/collections",
            json={"name": name, "symbol": symbol, "supplyType": "INFINITE"},
        )
        data = self._json(response)
        try:
            return str(data["collectionId"])
        except KeyError as e:
            raise IssuerError("ledger did not return a collectionId") from e

    def upload_content(self, content: Content) -> str:
        if isinstance(content, bytes):
            response = self._post(
                self._pinning,
                "/pinning/pinFileToIPFS",
                files={"file": ("content", content, "application/octet-stream")},
            )
        else:
            response = self._post(self._pinning, "/pinning/pinJSONToIPFS", json={"pinataContent": content})
        data = self._json(response)
        try:
            return data["IpfsHash"]
        except KeyError as e:
            raise IssuerError("pinning service did not return an IpfsHash") from e

    def mint(self, collection_id: str, content_ref: str) -> str:
        response = self._post(
            self._ledger,
            f"/api/v1/collections/{collection_id}/mint",
            json={"metadata": [f"ipfs://{content_ref}"]},
        )
        data = self._json(response)
        serials = data.get("serials") or []
        if not serials:
            raise IssuerError(f"mint on {collection_id} returned no serial")
        return str(serials[0])

    def transfer(self, collection_id: str, serial: str, recipient: str) -> bool:
        response = self._post(
            self._ledger,
            f"/api/v1/collections/{collection_id}/transfers",
            json={"serial": serial, "to": recipient},
        )
        if response.is_server_error:
            raise IssuerError(f"ledger error {response.status_code} on transfer")
        try:
            status = response.json().get("status")
        except json.JSONDecodeError as e:
            raise IssuerError("ledger answered a transfer with invalid JSON") from e
        if status != "SUCCESS":
            logger.warning("Transfer of %s/%s to %s refused: %s", collection_id, serial, recipient, status)
            return False
        return True

    def close(self) -> None:
        self._ledger.close()
        self._pinning.close()


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}
