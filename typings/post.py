from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


# Fields an edit may overwrite. The author is set once, at creation.
UPDATABLE_FIELDS = ("title", "summary", "content", "cover")


class PostFields(BaseModel):
    title: str
    summary: str
    content: str
    cover: Optional[str] = None  # object key, not a URL


class Post(PostFields):
    id: str = Field(..., alias="_id")
    author: str  # user id
    createdAt: datetime
    updatedAt: datetime

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, doc: dict) -> "Post":
        return cls(
            _id=str(doc["_id"]),
            title=doc["title"],
            summary=doc["summary"],
            content=doc["content"],
            cover=doc.get("cover"),
            author=str(doc["author"]),
            createdAt=doc["createdAt"],
            updatedAt=doc.get("updatedAt", doc["createdAt"]),
        )
