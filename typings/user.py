from pydantic import BaseModel, Field


class UserCredentials(BaseModel):
    username: str
    password: str


class User(BaseModel):
    id: str = Field(..., alias="_id")
    username: str
    password_hashed: str = Field(..., exclude=True)

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        return cls(
            _id=str(doc["_id"]),
            username=doc["username"],
            password_hashed=doc["password"],
        )

    def public(self) -> dict:
        return {"_id": self.id, "username": self.username}
