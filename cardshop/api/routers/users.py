# cardshop/api/routers/users.py
from fastapi import APIRouter, Depends, HTTPException, Request

from cardshop.api.deps import get_registry, get_session
from cardshop.domain.schemas import UserDetails
from cardshop.services.session import CustomerSession

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserDetails)
def get_profile(session: CustomerSession = Depends(get_session)):
    details = session.profile.details
    if not details:
        raise HTTPException(status_code=404, detail="Profile not found")
    return details


@router.post("/me/sign-out", status_code=204)
def sign_out(user_id: str, request: Request):
    get_registry(request).sign_out(user_id)
