from fastapi import APIRouter, Depends, Query

from proofpass.dependencies import get_repository
from proofpass.repository import Repository
from proofpass.schemas.verification import VerificationResult
from proofpass.services.verification import verify_badge

router = APIRouter(prefix="/verify", tags=["verify"])


@router.get("", response_model=VerificationResult)
def verify(
    collection_id: str = Query(..., min_length=1),
    serial: str = Query(..., min_length=1),
    repository: Repository = Depends(get_repository),
):
    """Public lookup, no authentication."""
    return verify_badge(repository, collection_id, serial)
