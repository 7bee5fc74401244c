from store.base import MarketplaceStore
from store.records import ProfileRecord
from utils.errors import ProfileNotFound, ValidationError
from utils.session import SessionContext, require_session
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

UPDATABLE_PROFILE_FIELDS = ("full_name", "location", "contact_number", "phone", "preferred_languages")

class UserHelpers:
    """Helper functions for profile operations"""

    async def get_own_profile(self, store: MarketplaceStore, session: SessionContext) -> ProfileRecord:
        session = require_session(session)
        profile = await store.get_profile(session.user_id)
        if profile is None:
            raise ProfileNotFound(session.user_id)
        return profile

    async def update_own_profile(
        self,
        store: MarketplaceStore,
        session: SessionContext,
        changes: Dict[str, Any]
    ) -> ProfileRecord:
        """
        Apply a partial update to the caller's profile.
        The role is fixed at sign-up; asking for a different one is rejected.
        """
        profile = await self.get_own_profile(store, session)

        requested_role = changes.pop("user_role", None)
        if requested_role is not None and requested_role != profile.user_role:
            logger.warning(f"User {session.user_id} tried to change role to {requested_role}")
            raise ValidationError("Role cannot be changed")

        update_data = {
            field: value for field, value in changes.items()
            if field in UPDATABLE_PROFILE_FIELDS and value is not None
        }
        if not update_data:
            return profile

        updated = await store.update_profile(session.user_id, update_data)
        if updated is None:
            raise ProfileNotFound(session.user_id)

        logger.info(f"Updated profile fields {sorted(update_data)} for {session.user_id}")
        return updated

user_helpers = UserHelpers()
