# cardshop/services/user_details_service.py
from typing import Optional

from cardshop.domain import entities
from cardshop.domain.errors import ErrorKind, StoreError
from cardshop.domain.schemas import UserDetails
from cardshop.services.entity_container import EntityContainer, Result
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)
repair_logger = get_logger("cardshop.data_repair")

DEFAULT_ROLE = "customer"


class UserDetailsContainer(EntityContainer[UserDetails]):
    """Profile row of the signed-in user, created on first access."""

    config = entities.USER_DETAILS

    def __init__(self, store, owner_id: Optional[str] = None, config=None):
        super().__init__(store, owner_id, config)
        self._creating = False

    @property
    def details(self) -> Optional[UserDetails]:
        items = self.items
        return items[0] if items else None

    @property
    def role(self) -> Optional[str]:
        details = self.details
        return details.role if details else None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def initialize(self) -> Result:
        result = super().initialize()
        if result and len(result.data) > 1:
            # oldest row wins; nothing is deleted here
            repair_logger.warning(
                f"user_details has {len(result.data)} rows for user {self.owner_id}, "
                f"using {result.data[0].id}"
            )
        return result

    def ensure_profile(self) -> Result:
        """
        Load the profile, inserting the default customer row when none exists.
        Returns the profile in Result.data.
        """
        if self.owner_id is None:
            return Result.fail(ErrorKind.UNAUTHORIZED, "No user logged in")

        loaded = self.initialize()
        if not loaded:
            return loaded
        if self.details is not None:
            return Result.ok(self.details)
        if self._creating:
            logger.info(f"{self.label} - profile creation already running for {self.owner_id}")
            return Result.ok(None)

        self._creating = True
        try:
            row = self.store.upsert(
                self.config.table,
                {"user_id": self.owner_id, "role": DEFAULT_ROLE},
                conflict=("user_id",),
                update=False,
            )
        except StoreError as e:
            return self._fail("creating", e)
        finally:
            self._creating = False

        item = self._parse(row)
        self._apply_insert(item)
        logger.info(f"{self.label} - created default profile for {self.owner_id}")
        return Result.ok(item)

    def mount(self) -> Result:
        self.mounted = True
        self._open_bridge()
        return self.ensure_profile()

    def update_profile(self, patch) -> Result:
        details = self.details
        if details is None:
            return Result.fail(ErrorKind.NOT_FOUND, "No profile loaded")
        return self.update(details.id, patch)
