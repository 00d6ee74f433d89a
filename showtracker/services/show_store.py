"""Show Store: the persistence boundary used by the import core and the API.

The orchestrator and routers only see the ``ShowStore`` protocol, so they can
run against MongoDB in production and an in-memory store in tests or dry runs.
"""

import logging
import uuid
from typing import Any, Optional, Protocol, runtime_checkable

from beanie import PydanticObjectId
from bson.errors import InvalidId

from showtracker.models.show import SHOW_FIELDS, Show, ShowDocument

logger = logging.getLogger(__name__)


class ShowNotFoundError(LookupError):
    """Raised when a show id does not exist in the store."""

    def __init__(self, show_id: str):
        self.show_id = show_id
        super().__init__(f"Show with ID {show_id} not found")


@runtime_checkable
class ShowStore(Protocol):
    """Persistence operations on a user's show collection."""

    supports_updates: bool

    async def create(self, show: Show) -> str: ...

    async def update(self, show_id: str, fields: dict[str, Any]) -> None: ...

    async def get(self, show_id: str) -> Optional[Show]: ...

    async def list(self) -> list[Show]: ...

    async def delete(self, show_id: str) -> None: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - SHOW_FIELDS
    if unknown:
        raise ValueError(f"Unknown show fields: {sorted(unknown)}")


class InMemoryShowStore:
    """Dict-backed store, ordered by insertion."""

    def __init__(self, shows: list[Show] | None = None, supports_updates: bool = True):
        self.supports_updates = supports_updates
        self._shows: dict[str, Show] = {}
        for show in shows or []:
            show_id = show.id or uuid.uuid4().hex
            self._shows[show_id] = show.model_copy(update={"id": show_id})

    async def create(self, show: Show) -> str:
        show_id = uuid.uuid4().hex
        self._shows[show_id] = show.model_copy(update={"id": show_id}, deep=True)
        return show_id

    async def update(self, show_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        if show_id not in self._shows:
            raise ShowNotFoundError(show_id)
        merged = self._shows[show_id].model_dump()
        merged.update(fields)
        self._shows[show_id] = Show.model_validate(merged)

    async def get(self, show_id: str) -> Optional[Show]:
        show = self._shows.get(show_id)
        return show.model_copy(deep=True) if show else None

    async def list(self) -> list[Show]:
        return [show.model_copy(deep=True) for show in self._shows.values()]

    async def delete(self, show_id: str) -> None:
        if self._shows.pop(show_id, None) is None:
            raise ShowNotFoundError(show_id)


class BeanieShowStore:
    """MongoDB-backed store, optionally scoped to one owner's collection."""

    supports_updates = True

    def __init__(self, owner_id: str | None = None):
        self.owner_id = owner_id

    async def _find(self, show_id: str) -> Optional[ShowDocument]:
        try:
            object_id = PydanticObjectId(show_id)
        except (InvalidId, TypeError, ValueError) as e:
            logger.debug("Invalid show ID format: %s - %s", show_id, e)
            return None
        return await ShowDocument.find_one(
            ShowDocument.id == object_id,
            ShowDocument.owner_id == self.owner_id,
        )

    async def create(self, show: Show) -> str:
        document = ShowDocument(
            owner_id=self.owner_id,
            **show.model_dump(include=set(SHOW_FIELDS)),
        )
        await document.insert()
        return str(document.id)

    async def update(self, show_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        document = await self._find(show_id)
        if document is None:
            raise ShowNotFoundError(show_id)
        validated = Show.model_validate({**document.to_show().model_dump(), **fields})
        for name in fields:
            setattr(document, name, getattr(validated, name))
        await document.save()

    async def get(self, show_id: str) -> Optional[Show]:
        document = await self._find(show_id)
        return document.to_show() if document else None

    async def list(self) -> list[Show]:
        documents = await ShowDocument.find(
            ShowDocument.owner_id == self.owner_id,
        ).sort(-ShowDocument.date).to_list()
        return [document.to_show() for document in documents]

    async def delete(self, show_id: str) -> None:
        document = await self._find(show_id)
        if document is None:
            raise ShowNotFoundError(show_id)
        await document.delete()
