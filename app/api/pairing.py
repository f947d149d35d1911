"""
app/api/pairing.py

Purpose: Session pairing endpoints used by the web page

- POST /api/pair           JSON {"number": "..."}
- GET  /link/pair/{number} legacy path form
- /link/delete             disconnect and delete every session
"""

from fastapi import APIRouter

from app.core.exceptions import InvalidRequestError
from app.core.logging import get_logger
from app.schemas.pairing import PairRequest, PairResponse, DeleteSessionsResponse
from app.services.session_manager import session_manager
from utils.constants import SESSIONS_DELETED_STATUS

logger = get_logger(__name__)
router = APIRouter()


async def perform_pairing(raw_number: str) -> PairResponse:
    code, clean_number = await session_manager.pair(raw_number)
    return PairResponse(success="true", code=code, number=clean_number)


@router.post("/api/pair", response_model=PairResponse)
async def pair_post(request: PairRequest):
    """
    Starts phone-code pairing for a number.

    Returns the 8-character code the user types into
    WhatsApp > Linked devices > Link with phone number.
    """
    return await perform_pairing(request.number)


@router.get("/link/pair/", include_in_schema=False)
async def pair_legacy_missing_number():
    raise InvalidRequestError("Invalid URL")


@router.get("/link/pair/{number}", response_model=PairResponse)
async def pair_legacy(number: str):
    """Legacy GET form: /link/pair/923001234567"""
    return await perform_pairing(number)


@router.api_route("/link/delete", methods=["GET", "POST"], response_model=DeleteSessionsResponse)
async def delete_sessions():
    """Disconnects every session and deletes all linked devices."""
    deleted = await session_manager.delete_all_sessions()
    logger.warning(f"All sessions deleted via API ({deleted} devices)")
    return DeleteSessionsResponse(status=SESSIONS_DELETED_STATUS)
