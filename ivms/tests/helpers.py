"""
Shared test helpers: auth headers and request payloads.
"""

from datetime import datetime, timedelta, timezone

from ivms.app.core.jwt import create_access_token
from ivms.app.models.user import User


def claims_for(user: User) -> dict:
    """The dict get_current_user would hand to a service for this user."""
    return {
        "sub": user.username,
        "user_id": user.id,
        "department": user.department.value,
        "role": user.role.value,
    }


def headers_for(user: User) -> dict:
    token = create_access_token(data=claims_for(user))
    return {"Authorization": f"Bearer {token}"}


def trip_payload(**overrides) -> dict:
    departure = datetime.now(timezone.utc) + timedelta(days=1)
    payload = {
        "requested_car_type": "SEDAN",
        "departure_location": "Head Office",
        "destination": "Port Terminal",
        "purpose": "Client visit",
        "departure_datetime": departure.isoformat(),
        "return_datetime": (departure + timedelta(hours=8)).isoformat(),
    }
    payload.update(overrides)
    return payload
