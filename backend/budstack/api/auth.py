"""
Authentication API endpoints
- Login (all roles)
- Own profile and password
- Self-service password reset by e-mailed link

Author: TM3
Date: 2025-11-04
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from budstack.core.auth import TokenUser, get_current_user
from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.core.rate_limit import enforce_user_rate_limit
from budstack.domain.user import (
    LoginRequest, ChangePasswordRequest, ProfileUpdate, ForgotPasswordRequest, ResetPasswordRequest,
)
from budstack.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(body: LoginRequest, request: Request):
    """Exchange e-mail and password for a bearer token"""
    try:
        result = AuthService().login(body.email, body.password, headers=request.headers)
        return {"status": "success", "data": result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@router.get("/me")
async def get_me(user: TokenUser = Depends(get_current_user)):
    try:
        profile = AuthService().get_profile(user.id)
        return {"status": "success", "data": profile.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching profile: {str(e)}")


@router.put("/me")
async def update_me(body: ProfileUpdate, user: TokenUser = Depends(get_current_user)):
    try:
        profile = AuthService().update_profile(user.id, body)
        return {"status": "success", "data": profile.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating profile: {str(e)}")


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    user: TokenUser = Depends(get_current_user)
):
    try:
        AuthService().change_password(user, body.current_password, body.new_password, headers=request.headers)
        return {"status": "success", "message": "Password updated"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error changing password: {str(e)}")


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordRequest, request: Request, background_tasks: BackgroundTasks):
    """E-mail a reset link. The response does not reveal whether the account exists."""
    enforce_user_rate_limit(body.email.lower(), "password-reset", max_requests=5)
    try:
        result = AuthService(background_tasks=background_tasks).request_password_reset(
            body.email, headers=request.headers
        )
        return {"status": "success", "message": result["message"]}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Password reset request failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error requesting password reset: {str(e)}")


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, request: Request):
    try:
        AuthService().reset_password(body.token, body.new_password, headers=request.headers)
        return {"status": "success", "message": "Password has been reset"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resetting password: {str(e)}")
