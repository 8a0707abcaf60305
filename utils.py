from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request

from util.authoring import AuthoringWorkflow
from util.cert import Invalid, TokenService, Verified
from util.errors import NotFound, Unauthenticated
from util.image_storage import ObjectUploadGateway


def validate_object_id(id: str) -> ObjectId:
    # malformed ids cannot name an existing document
    if not isinstance(id, str) or not ObjectId.is_valid(id):
        raise NotFound("Invalid Object ID")
    return ObjectId(id)


def get_settings(request: Request):
    return request.app.state.settings


def get_users(request: Request):
    return request.app.state.users


def get_posts(request: Request):
    return request.app.state.posts


def get_storage(request: Request) -> ObjectUploadGateway:
    return request.app.state.storage


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_session_token(request: Request) -> Optional[str]:
    """
    Read the session token from the cookie named in the settings.
    """
    return request.cookies.get(request.app.state.settings.cookie_name)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    tokens: TokenService = Depends(get_tokens),
) -> Verified:
    """
    用于 Depends 注入, 返回当前用户的身份
    """
    result = tokens.verify(token)
    if isinstance(result, Invalid):
        raise Unauthenticated(f"Could not validate credentials ({result.reason})")
    return result


def get_authoring_workflow(
    tokens: TokenService = Depends(get_tokens),
    storage: ObjectUploadGateway = Depends(get_storage),
    posts=Depends(get_posts),
    settings=Depends(get_settings),
) -> AuthoringWorkflow:
    return AuthoringWorkflow(
        tokens, storage, posts, cleanup_orphans=settings.cleanup_orphan_uploads
    )
