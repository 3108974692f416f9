# cardshop/api/deps.py
from typing import Optional

from fastapi import HTTPException, Query, Request, UploadFile

from cardshop.domain.errors import ErrorKind
from cardshop.services.blob_storage import MediaUpload
from cardshop.services.entity_container import Result
from cardshop.services.session import AdminConsole, Catalog, CustomerSession, SessionRegistry

STATUS_FOR = {
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID: 400,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.UNKNOWN: 500,
}


def unwrap(result: Result):
    """Return Result.data or raise the HTTP error matching its ErrorKind."""
    if result:
        return result.data
    kind = result.error or ErrorKind.UNKNOWN
    raise HTTPException(status_code=STATUS_FOR[kind], detail=result.message or kind.value)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_catalog(request: Request) -> Catalog:
    catalog: Catalog = request.app.state.catalog
    catalog.sync()
    return catalog


def get_session(request: Request, user_id: str = Query(..., min_length=1)) -> CustomerSession:
    return get_registry(request).customer(user_id)


def get_admin(request: Request, user_id: str = Query(..., min_length=1)) -> AdminConsole:
    console = get_registry(request).admin(user_id)
    if console is None:
        raise HTTPException(status_code=403, detail="Admin role required")
    return console


def read_upload(upload: Optional[UploadFile]) -> Optional[MediaUpload]:
    """Buffer a multipart file; None when the field was left empty."""
    if upload is None or not upload.filename:
        return None
    return MediaUpload(
        filename=upload.filename,
        content=upload.file.read(),
        content_type=upload.content_type or "application/octet-stream",
    )
