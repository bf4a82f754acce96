"""
ChargeSphere - REST Authentication Router
Handles sign-up, login and token refresh via the Firebase REST API.
"""

from fastapi import APIRouter, Depends, HTTPException, status
import logging

from models.user import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from services.exceptions import ChargeSphereError
from services.identity_service import IdentityService, get_identity_service
from services.user_service import UserService, get_user_service

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Email already registered"}
    }
)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register New User",
    description="Create a customer account. Passwords are stored by Firebase Authentication."
)
async def register(
    request: RegisterRequest,
    users: UserService = Depends(get_user_service)
) -> AuthResponse:
    try:
        return await users.register(request)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="User Login",
    description="Authenticate with email and password. The role comes from the stored profile."
)
async def login(
    request: LoginRequest,
    users: UserService = Depends(get_user_service)
) -> AuthResponse:
    try:
        return await users.login(request)

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )


@router.post(
    "/refresh",
    summary="Refresh Token",
    description="Get a new ID token using a refresh token."
)
async def refresh_token(
    request: RefreshRequest,
    identity: IdentityService = Depends(get_identity_service)
):
    try:
        session = await identity.refresh(request.refresh_token)
        return {
            "success": True,
            "token": session["token"],
            "refresh_token": session["refresh_token"],
            "expires_in": session["expires_in"]
        }

    except (ChargeSphereError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"Token refresh error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error"
        )
