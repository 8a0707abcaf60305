"""
Credential store: users collection access.
"""

import logging
from typing import Iterable, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from typings.user import User
from util.cert import MAX_PASSWORD_BYTES, check_password, hash_password
from util.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 64


def validate_credentials(username: str, password: str) -> str:
    """
    Return the normalized username or raise ``ValidationError``.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    if not password:
        raise ValidationError("Password is required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return username


class MongoUserRepository:
    def __init__(self, collection):
        self.collection = collection

    async def ensure_indexes(self):
        await self.collection.create_index("username", unique=True)

    async def create(self, username: str, password_hashed: str) -> User:
        doc = {"username": username, "password": password_hashed}
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ValidationError("Username already exists")
        doc["_id"] = result.inserted_id
        return User.from_document(doc)

    async def find_by_username(self, username: str) -> Optional[User]:
        doc = await self.collection.find_one({"username": username})
        return User.from_document(doc) if doc else None

    async def find_by_ids(self, ids: Iterable[str]) -> dict[str, User]:
        oids = [ObjectId(i) for i in set(ids) if ObjectId.is_valid(i)]
        if not oids:
            return {}
        docs = await self.collection.find({"_id": {"$in": oids}}).to_list(None)
        return {str(doc["_id"]): User.from_document(doc) for doc in docs}


class InMemoryUserRepository:
    def __init__(self):
        self.users: dict[str, dict] = {}

    async def ensure_indexes(self):
        pass

    async def create(self, username: str, password_hashed: str) -> User:
        if any(doc["username"] == username for doc in self.users.values()):
            raise ValidationError("Username already exists")
        doc = {"_id": ObjectId(), "username": username, "password": password_hashed}
        self.users[str(doc["_id"])] = doc
        return User.from_document(doc)

    async def find_by_username(self, username: str) -> Optional[User]:
        for doc in self.users.values():
            if doc["username"] == username:
                return User.from_document(doc)
        return None

    async def find_by_ids(self, ids: Iterable[str]) -> dict[str, User]:
        return {
            i: User.from_document(self.users[i]) for i in set(ids) if i in self.users
        }


async def register_user(users, username: str, password: str) -> User:
    username = validate_credentials(username, password)
    user = await users.create(username, hash_password(password))
    logger.info("Registered user %s (%s)", user.username, user.id)
    return user


async def authenticate_user(users, username: str, password: str) -> User:
    """
    Return the user when the password matches, else raise ``ValidationError``.
    Unknown usernames and wrong passwords are indistinguishable to the caller.
    """
    user = await users.find_by_username((username or "").strip())
    if user is None or not check_password(password or "", user.password_hashed):
        logger.info("Failed login for %r", username)
        raise ValidationError("Wrong credentials")
    return user
