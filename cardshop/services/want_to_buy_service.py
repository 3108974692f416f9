# cardshop/services/want_to_buy_service.py
from typing import Dict, List, Optional

from pydantic import ValidationError

from cardshop.domain import entities
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import UserDetails, WantToBuy
from cardshop.services.blob_storage import MediaPrefix, MediaUpload
from cardshop.services.entity_container import EntityContainer, Result
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


class WantToBuyContainer(EntityContainer[WantToBuy]):
    """
    Card requests. Customers see their own (owner_id set); the admin
    console builds one without an owner on the elevated client to see all.
    """

    config = entities.WANT_TO_BUY

    def create(self, data) -> Result:
        if self.owner_id is None and not self.store.elevated:
            logger.error(f"{self.label} - User not authenticated")
            return Result.fail(ErrorKind.UNAUTHORIZED, "User not authenticated")
        return super().create(data)

    def create_with_media(self, data, photo: Optional[MediaUpload] = None) -> Result:
        try:
            values = self._insert_values(data)
            if photo is not None:
                values["media_url"] = self._upload(MediaPrefix.WANT_TO_BUY, photo)
        except (StoreError, ValidationError) as e:
            return self._fail("uploading photo for", e)
        return self.create(values)

    def mark_done(self, item_id: str) -> Result:
        return self.update(item_id, {"done": True})

    def mark_pending(self, item_id: str) -> Result:
        return self.update(item_id, {"done": False})

    def by_user(self, user_id: str) -> List[WantToBuy]:
        return self.filter_by("user_id", user_id)

    def completed(self) -> List[WantToBuy]:
        return self.partition_by_flag("done")[0]

    def pending(self) -> List[WantToBuy]:
        return self.partition_by_flag("done")[1]

    def requesters(self) -> Dict[str, UserDetails]:
        """Profiles of everyone with a request. Needs the elevated client."""
        user_ids = sorted({i.user_id for i in self.items if i.user_id})
        if not user_ids:
            return {}
        try:
            rows = self.store.fetch("user_details", {"user_id": user_ids}, order_by="created_at")
        except StoreError as e:
            logger.error(f"{self.label} - Error resolving requesters: {e}")
            return {}
        out: Dict[str, UserDetails] = {}
        for row in rows:
            out.setdefault(row["user_id"], UserDetails.model_validate(row))
        return out
