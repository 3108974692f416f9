from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from cardshop.api.deps import get_session, read_upload, unwrap
from cardshop.domain.schemas import WantToBuy, WantToBuyInsert
from cardshop.services.session import CustomerSession

router = APIRouter(prefix="/want-to-buy", tags=["want-to-buy"])


@router.get("", response_model=List[WantToBuy])
def list_requests(q: str = "", session: CustomerSession = Depends(get_session)):
    return session.want_to_buy.search(q)


@router.post("", response_model=WantToBuy, status_code=201)
def create_request(payload: WantToBuyInsert, session: CustomerSession = Depends(get_session)):
    return unwrap(session.want_to_buy.create(payload))


@router.post("/with-media", response_model=WantToBuy, status_code=201)
def create_request_with_photo(
    card_name: str = Form(...),
    condition: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    session: CustomerSession = Depends(get_session),
):
    data = {"card_name": card_name, "condition": condition}
    return unwrap(session.want_to_buy.create_with_media(data, read_upload(photo)))
