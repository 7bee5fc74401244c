from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from dependencies.store import get_store
from store.base import MarketplaceStore
from utils.session import SessionContext
from .schemas import (
    UserRegister,
    UserLogin,
    RefreshRequest,
    AuthResponse,
    TokenResponse,
)
from .helpers import auth_helpers
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer(auto_error=False)


async def session_from_token(token: str, store: MarketplaceStore) -> SessionContext:
    """Build the session for a bearer token; the role comes from the JWT, then the profile"""
    supabase_user = auth_helpers.verify_token(token)

    role = supabase_user.role
    if role:
        logger.info(f"User {supabase_user.id} authenticated via JWT role: {role}")
    else:
        logger.info(f"No role in JWT for user {supabase_user.id}, checking profile...")
        profile = await store.get_profile(supabase_user.id)
        if profile:
            role = profile.user_role
            logger.info(f"User {supabase_user.id} role from profile: {role}")
        else:
            logger.warning(f"No profile found for {supabase_user.id}, continuing without a role")

    return SessionContext(
        user_id=str(supabase_user.id),
        email=supabase_user.email,
        role=role,
        access_token=token
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: MarketplaceStore = Depends(get_store)
) -> SessionContext:
    """Get current user session from JWT token"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    session = await session_from_token(credentials.credentials, store)
    request.state.current_user = session
    return session


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    store: MarketplaceStore = Depends(get_store)
):
    try:
        auth_response = auth_helpers.supabase.auth.sign_up({
            "email": user_data.email,
            "password": user_data.password,
            "options": {
                "data": {
                    "full_name": user_data.full_name,
                    "user_role": user_data.user_role.value,
                    "contact_number": user_data.contact_number,
                    "location": user_data.location,
                    "preferred_languages": user_data.preferred_languages
                }
            }
        })

        if auth_response.user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to create user account"
            )

        supabase_user_id = str(auth_response.user.id)
        existing_profile = await store.get_profile(supabase_user_id)
        if existing_profile is None:
            await store.insert_profile({
                "user_id": supabase_user_id,
                "full_name": user_data.full_name,
                "user_role": user_data.user_role.value,
                "contact_number": user_data.contact_number,
                "location": user_data.location,
                "preferred_languages": user_data.preferred_languages
            })
        logger.info(f"Registered {user_data.user_role.value} {supabase_user_id}")

        if auth_response.session is None:
            return AuthResponse(
                access_token="",
                refresh_token="",
                message="Account created successfully. Please check your email to verify your account before logging in."
            )

        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            message="Account created successfully."
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )

@router.post("/login", response_model=AuthResponse)
async def login(
    user_data: UserLogin
):
    try:
        auth_response = auth_helpers.supabase.auth.sign_in_with_password({
            "email": user_data.email,
            "password": user_data.password
        })

        if auth_response.user is None or auth_response.session is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshRequest
):
    session = await auth_helpers.refresh_token(refresh_data.refresh_token)

    return TokenResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token
    )

@router.post("/logout")
async def logout(
    current_user: SessionContext = Depends(get_current_user)
):
    try:
        auth_helpers.admin_client.auth.admin.sign_out(current_user.access_token)
        logger.info(f"User {current_user.user_id} signed out")
        return {"message": "Successfully logged out"}

    except Exception as e:
        logger.error(f"Logout failed: {str(e)}")
        return {"message": "Logout completed"}
