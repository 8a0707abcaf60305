import logging

from fastapi import APIRouter, Depends, Response

from typings.user import UserCredentials
from util.cert import TokenService, Verified
from util.response import ok
from util.users import authenticate_user, register_user
from utils import get_current_user, get_settings, get_tokens, get_users

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=201)
async def register(payload: UserCredentials, users=Depends(get_users)):
    """
    Create an account. The password hash is never returned.
    """
    user = await register_user(users, payload.username, payload.password)
    return ok(user.public(), code=201)


@router.post("/login")
async def login(
    payload: UserCredentials,
    response: Response,
    users=Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
    settings=Depends(get_settings),
):
    user = await authenticate_user(users, payload.username, payload.password)
    token = tokens.issue(user.id, user.username)
    response.set_cookie(
        settings.cookie_name,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
        max_age=settings.token_expire_days * 24 * 60 * 60,
    )
    logger.info("User %s logged in", user.id)
    return ok({"id": user.id, "username": user.username})


@router.get("/profile")
async def profile(user: Verified = Depends(get_current_user)):
    """
    Return the identity carried by the session cookie.
    """
    return ok({"id": user.user_id, "username": user.username, "iat": user.issued_at})


@router.post("/logout")
async def logout(response: Response, settings=Depends(get_settings)):
    response.delete_cookie(
        settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
    )
    return ok("ok")
