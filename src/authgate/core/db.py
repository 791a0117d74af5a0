from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pymongo.asynchronous.cursor import AsyncCursor


class MongoModel(BaseModel):
    """Base for documents persisted in MongoDB, keyed by a UUID `_id`."""

    id: UUID = Field(alias="_id", serialization_alias="id", default_factory=uuid4)

    model_config = ConfigDict(populate_by_name=True)

    def to_mongo(self) -> dict[str, Any]:
        data = self.model_dump()
        data["_id"] = data.pop("id")
        return data

    @classmethod
    def from_mongo(cls, document: dict[str, Any] | None) -> Self | None:
        """Validate a raw document, passing a missing document through as None."""
        if document is None:
            return None
        return cls.model_validate(document)

    @classmethod
    async def list_cursor(cls, cursor: AsyncCursor[dict[str, Any]]) -> list[Self]:
        return [cls.model_validate(item) async for item in cursor]
