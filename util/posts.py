"""
Post repository and the public rendering of posts.
"""

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from typings.post import UPDATABLE_FIELDS, Post, PostFields
from util.errors import NotFound
from utils import validate_object_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _updatable(fields: dict) -> dict:
    return {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}


class MongoPostRepository:
    def __init__(self, collection):
        self.collection = collection

    async def ensure_indexes(self):
        await self.collection.create_index([("createdAt", DESCENDING)])

    async def create(self, fields: PostFields, author_id: str) -> Post:
        now = _now()
        doc = fields.model_dump()
        doc.update({"author": ObjectId(author_id), "createdAt": now, "updatedAt": now})
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return Post.from_document(doc)

    async def find_by_id(self, post_id: str) -> Post:
        doc = await self.collection.find_one({"_id": validate_object_id(post_id)})
        if doc is None:
            raise NotFound("Post not found")
        return Post.from_document(doc)

    async def list_recent(self, limit: int = 20) -> list[Post]:
        docs = (
            await self.collection.find()
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
            .to_list(limit)
        )
        return [Post.from_document(doc) for doc in docs]

    async def update(self, post_id: str, fields: dict) -> Post:
        """
        Partial update: only the supplied fields change. ``author`` is
        never written.
        """
        changes = _updatable(fields)
        changes["updatedAt"] = _now()
        doc = await self.collection.find_one_and_update(
            {"_id": validate_object_id(post_id)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound("Post not found")
        return Post.from_document(doc)


class InMemoryPostRepository:
    def __init__(self):
        self.posts: dict[str, dict] = {}

    async def ensure_indexes(self):
        pass

    async def create(self, fields: PostFields, author_id: str) -> Post:
        now = _now()
        doc = fields.model_dump()
        doc.update(
            {"_id": ObjectId(), "author": author_id, "createdAt": now, "updatedAt": now}
        )
        self.posts[str(doc["_id"])] = doc
        return Post.from_document(doc)

    async def find_by_id(self, post_id: str) -> Post:
        doc = self.posts.get(str(validate_object_id(post_id)))
        if doc is None:
            raise NotFound("Post not found")
        return Post.from_document(doc)

    async def list_recent(self, limit: int = 20) -> list[Post]:
        docs = sorted(
            self.posts.values(),
            key=lambda doc: (doc["createdAt"], doc["_id"]),
            reverse=True,
        )
        return [Post.from_document(doc) for doc in docs[:limit]]

    async def update(self, post_id: str, fields: dict) -> Post:
        doc = self.posts.get(str(validate_object_id(post_id)))
        if doc is None:
            raise NotFound("Post not found")
        doc.update(_updatable(fields))
        doc["updatedAt"] = _now()
        return Post.from_document(doc)


def present_post(post: Post, storage, author_name: Optional[str]) -> dict:
    """
    Render a post for the API: cover key resolved to a URL, author
    populated with its username.
    """
    return {
        "_id": post.id,
        "title": post.title,
        "summary": post.summary,
        "content": post.content,
        "cover": storage.url_for(post.cover),
        "author": {"_id": post.author, "username": author_name},
        "createdAt": post.createdAt.isoformat(),
        "updatedAt": post.updatedAt.isoformat(),
    }


async def present_posts(posts: list[Post], storage, users) -> list[dict]:
    authors = await users.find_by_ids(post.author for post in posts)
    return [
        present_post(
            post,
            storage,
            authors[post.author].username if post.author in authors else None,
        )
        for post in posts
    ]
