from typing import Optional

from pydantic import BaseModel


class VerificationResult(BaseModel):
    verified: bool
    collection_id: str
    serial: str
    owner_wallet: Optional[str] = None
    event_name: str
    issuer_name: Optional[str] = None
    date: str
    badge_image_cid: Optional[str] = None
    metadata_cid: Optional[str] = None
