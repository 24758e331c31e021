from typing import List, Optional

from pydantic import BaseModel, Field

from proofpass.models import Registration


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    long: float = Field(ge=-180, le=180, allow_inf_nan=False)


class ClaimRequest(BaseModel):
    location: Optional[Location] = None


class MetadataAttribute(BaseModel):
    trait_type: str
    value: str


class BadgeMetadata(BaseModel):
    name: str
    description: str
    image: str
    attributes: List[MetadataAttribute]


class ClaimResult(BaseModel):
    success: bool = True
    collection_id: str
    serial: str
    metadata_cid: str
    registration: Registration
