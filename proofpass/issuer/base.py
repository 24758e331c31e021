from abc import ABC, abstractmethod
from typing import Any, Union

Content = Union[bytes, dict[str, Any]]


class IssuerError(Exception):
    """The ledger or the content store failed or could not be reached."""


class CredentialIssuer(ABC):
    """Ledger + content store used to provision, mint and deliver badges."""

    @abstractmethod
    def create_collection(self, name: str, symbol: str) -> str:
        """Create a badge collection and return its id."""

    @abstractmethod
    def upload_content(self, content: Content) -> str:
        """Store raw bytes or a JSON document and return its content id."""

    @abstractmethod
    def mint(self, collection_id: str, content_ref: str) -> str:
        """Mint one unit pointing at ``content_ref`` and return its serial."""

    @abstractmethod
    def transfer(self, collection_id: str, serial: str, recipient: str) -> bool:
        """Move a minted unit to ``recipient``. False when the ledger refuses it."""

    def close(self) -> None:
        pass
