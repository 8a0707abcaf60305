"""
Post authoring: token verification, optional cover upload, ownership
enforcement and the document write, in that order.

Every step either succeeds or raises a ``BlogError``; nothing is retried
and an already committed write is never rolled back. An object uploaded
during a request that later fails is left in storage unless
``cleanup_orphans`` is set, in which case it is deleted best-effort.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from typings.post import Post, PostFields
from util.cert import Invalid, TokenService, Verified
from util.errors import Forbidden, Unauthenticated, UploadError
from util.image_storage import ObjectUploadGateway

logger = logging.getLogger(__name__)


@dataclass
class Upload:
    data: bytes
    filename: str


class AuthoringWorkflow:
    def __init__(
        self,
        tokens: TokenService,
        storage: ObjectUploadGateway,
        posts,
        cleanup_orphans: bool = False,
    ):
        self.tokens = tokens
        self.storage = storage
        self.posts = posts
        self.cleanup_orphans = cleanup_orphans

    def authenticate(self, token) -> Verified:
        result = self.tokens.verify(token)
        if isinstance(result, Invalid):
            raise Unauthenticated(f"Could not validate credentials ({result.reason})")
        return result

    async def create_post(
        self,
        token,
        title: str,
        summary: str,
        content: str,
        upload: Optional[Upload] = None,
    ) -> tuple[Post, Verified]:
        identity = self.authenticate(token)
        cover = await self._upload(upload)
        try:
            post = await self.posts.create(
                PostFields(title=title, summary=summary, content=content, cover=cover),
                identity.user_id,
            )
        except Exception:
            await self._discard(cover)
            raise
        logger.info("User %s created post %s", identity.user_id, post.id)
        return post, identity

    async def edit_post(
        self,
        token,
        post_id: str,
        title: str,
        summary: str,
        content: str,
        upload: Optional[Upload] = None,
    ) -> tuple[Post, Verified]:
        identity = self.authenticate(token)
        cover = await self._upload(upload)
        try:
            post = await self.posts.find_by_id(post_id)
            if post.author != identity.user_id:
                logger.warning(
                    "User %s tried to edit post %s owned by %s",
                    identity.user_id,
                    post.id,
                    post.author,
                )
                raise Forbidden("You are not the author")

            fields = {"title": title, "summary": summary, "content": content}
            if cover is not None:
                fields["cover"] = cover
            post = await self.posts.update(post.id, fields)
        except Exception:
            await self._discard(cover)
            raise
        logger.info("User %s edited post %s", identity.user_id, post.id)
        return post, identity

    async def _upload(self, upload: Optional[Upload]) -> Optional[str]:
        if upload is None:
            return None
        return await self.storage.upload(upload.data, upload.filename)

    async def _discard(self, key: Optional[str]):
        if key is None or not self.cleanup_orphans:
            return
        try:
            await self.storage.remove(key)
        except UploadError:
            logger.exception("Could not remove orphaned object %s", key)
