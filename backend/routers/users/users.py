from fastapi import APIRouter, Depends, HTTPException, status
from dependencies.rbac import require_profile_read, require_profile_write
from dependencies.store import get_store
from routers.auth.auth import get_current_user
from store.base import MarketplaceStore
from utils.errors import MarketplaceError, to_http_exception
from utils.response_helpers import safe_model_validate
from utils.session import SessionContext
from .schemas import UserProfileUpdate, UserResponse
from .helpers import user_helpers
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_profile_read)
):
    """
    Get current user's profile
    """
    try:
        profile = await user_helpers.get_own_profile(store, current_user)

        user_data = profile.model_dump()
        user_data["email"] = current_user.email
        if not user_data.get("preferred_languages"):
            user_data["preferred_languages"] = ["English"]

        return safe_model_validate(UserResponse, user_data)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting user profile: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get profile"
        )


@router.put("/me", response_model=UserResponse)
async def update_current_user_profile(
    profile_update: UserProfileUpdate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_profile_write)
):
    """Update current user's profile information"""
    try:
        profile = await user_helpers.update_own_profile(
            store,
            current_user,
            profile_update.model_dump(exclude_unset=True)
        )

        user_data = profile.model_dump()
        user_data["email"] = current_user.email
        if not user_data.get("preferred_languages"):
            user_data["preferred_languages"] = ["English"]

        return safe_model_validate(UserResponse, user_data)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating user profile: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )
