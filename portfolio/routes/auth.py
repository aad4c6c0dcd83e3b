"""
Account routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio.auth import AuthService
from portfolio.dependencies import get_auth_service, require_user
from portfolio.records import User
from portfolio.schemas import LoginRequest, SignupRequest, ok

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.signup(payload.email, payload.password, payload.name)
    return ok({"token": token, "user": user.as_dict()})


@router.post("/login")
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.login(payload.email, payload.password)
    return ok({"token": token, "user": user.as_dict()})


@router.get("/verify")
def verify(user: User = Depends(require_user)):
    return ok({"user": user.as_dict()})
