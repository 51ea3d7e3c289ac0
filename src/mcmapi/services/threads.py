"""Thread endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ..core.models import BasicThread, SortOptions, Thread, ThreadReply, validate_id

if TYPE_CHECKING:
    from .wrapper import APIWrapper


class ThreadsHelper:
    """Wraps the /threads endpoints."""

    def __init__(self, wrapper: "APIWrapper") -> None:
        self._wrapper = wrapper

    async def list(self, sort: Optional[SortOptions] = None) -> List[BasicThread]:
        return BasicThread.from_list(await self._wrapper.get("/threads", sort))

    async def fetch(self, thread_id: int) -> Thread:
        return Thread.from_payload(await self._wrapper.get(f"/threads/{validate_id(thread_id)}"))

    async def list_replies(self, thread_id: int, sort: Optional[SortOptions] = None) -> List[ThreadReply]:
        data = await self._wrapper.get(f"/threads/{validate_id(thread_id)}/replies", sort)
        return ThreadReply.from_list(data)

    async def reply(self, thread_id: int, message: str) -> int:
        """Reply to a thread and return the new reply identifier."""

        return int(await self._wrapper.post(f"/threads/{validate_id(thread_id)}/replies", {"message": message}))
