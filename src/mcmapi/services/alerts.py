"""Alert endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from ..core.models import Alert

if TYPE_CHECKING:
    from .wrapper import APIWrapper


class AlertsHelper:
    """Wraps the /alerts endpoints."""

    def __init__(self, wrapper: "APIWrapper") -> None:
        self._wrapper = wrapper

    async def list_unread(self) -> List[Alert]:
        return Alert.from_list(await self._wrapper.get("/alerts"))

    async def mark_as_read(self) -> None:
        await self._wrapper.patch("/alerts", {"read": True})
