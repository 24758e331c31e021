import math

from proofpass.security import Principal, token_for
from proofpass.services.geofence import EARTH_RADIUS_M

VENUE_LAT = 11.0234
VENUE_LONG = 76.9876
STUDENT_WALLET = "0.0.4804"


def offset_north(lat: float, meters: float) -> float:
    """Latitude ``meters`` due north of ``lat`` on the haversine sphere."""
    return lat + math.degrees(meters / EARTH_RADIUS_M)


def auth_headers(account_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {token_for(Principal(id=account_id, role=role))}"}
