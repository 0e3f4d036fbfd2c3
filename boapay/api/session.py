"""
Login, registration and session endpoints
"""

from fastapi import APIRouter, Depends, Response, status

from .auth import (
    BankingSystem, clear_session_cookie, get_banking_system, get_current_user, set_session_cookie
)
from .schemas import LoginRequest, RegisterRequest
from ..users import User


router = APIRouter()


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    system: BankingSystem = Depends(get_banking_system)
):
    """Check credentials and start a session"""
    user = system.users.authenticate(request.username, request.password)
    set_session_cookie(response, user, system.config)
    return user.to_public_dict()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    response: Response,
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a customer and log them in"""
    user = system.users.register(
        username=request.username,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        phone=request.phone
    )
    set_session_cookie(response, user, system.config)
    return user.to_public_dict()


@router.get("/session")
async def get_session(user: User = Depends(get_current_user)):
    """Current user"""
    return user.to_public_dict()


@router.post("/logout")
async def logout(response: Response, system: BankingSystem = Depends(get_banking_system)):
    clear_session_cookie(response, system.config)
    return {"message": "Logged out successfully"}
