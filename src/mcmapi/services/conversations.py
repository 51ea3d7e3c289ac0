"""Conversation endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from ..core.models import Conversation, ConversationReply, validate_id

if TYPE_CHECKING:
    from .wrapper import APIWrapper


class ConversationsHelper:
    """Wraps the /conversations endpoints."""

    def __init__(self, wrapper: "APIWrapper") -> None:
        self._wrapper = wrapper

    async def list_unread(self) -> List[Conversation]:
        return Conversation.from_list(await self._wrapper.get("/conversations"))

    async def list_replies(self, conversation_id: int) -> List[ConversationReply]:
        data = await self._wrapper.get(f"/conversations/{validate_id(conversation_id)}/replies")
        return ConversationReply.from_list(data)

    async def start(self, title: str, message: str, recipient_ids: Sequence[int]) -> int:
        """Start a conversation and return its identifier."""

        recipients = [validate_id(member_id) for member_id in recipient_ids]
        if not recipients:
            raise ValueError("At least one recipient is required")
        body = {"title": title, "message": message, "recipient_ids": recipients}
        return int(await self._wrapper.post("/conversations", body))

    async def reply(self, conversation_id: int, message: str) -> int:
        """Reply to a conversation and return the new message identifier."""

        path = f"/conversations/{validate_id(conversation_id)}/replies"
        return int(await self._wrapper.post(path, {"message": message}))
