from typing import Optional

from pydantic import BaseModel, Field


class EventRegistrationRequest(BaseModel):
    student_wallet: Optional[str] = None


class WalletUpdate(BaseModel):
    wallet_address: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    name: str = Field(min_length=1)
    college: str = Field(min_length=1)
    department: str = Field(min_length=1)
    roll_no: str = Field(min_length=1)


class ProfileRead(ProfileUpdate):
    profile_cid: str
