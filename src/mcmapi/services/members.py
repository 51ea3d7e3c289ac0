"""Member endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from urllib.parse import quote

from ..core.models import Ban, Member, ProfileChange, ProfilePost, SortOptions, validate_id

if TYPE_CHECKING:
    from .wrapper import APIWrapper


class MembersHelper:
    """Wraps the /members endpoints."""

    def __init__(self, wrapper: "APIWrapper") -> None:
        self._wrapper = wrapper

    async def fetch_self(self) -> Member:
        return Member.from_payload(await self._wrapper.get("/members/self"))

    async def fetch_by_id(self, member_id: int) -> Member:
        return Member.from_payload(await self._wrapper.get(f"/members/{validate_id(member_id)}"))

    async def fetch_by_name(self, username: str) -> Member:
        username = username.strip()
        if not username:
            raise ValueError("username must not be empty")
        return Member.from_payload(await self._wrapper.get(f"/members/username/{quote(username, safe='')}"))

    async def modify_self(self, change: ProfileChange) -> None:
        body = change.to_body()
        if not body:
            raise ValueError("No profile fields to modify")
        await self._wrapper.patch("/members/self", body)

    async def list_recent_bans(self) -> List[Ban]:
        return Ban.from_list(await self._wrapper.get("/members/bans"))

    async def list_profile_posts(self, sort: Optional[SortOptions] = None) -> List[ProfilePost]:
        return ProfilePost.from_list(await self._wrapper.get("/members/profile-posts", sort))

    async def fetch_profile_post(self, profile_post_id: int) -> ProfilePost:
        data = await self._wrapper.get(f"/members/profile-posts/{validate_id(profile_post_id)}")
        return ProfilePost.from_payload(data)

    async def edit_profile_post(self, profile_post_id: int, message: str) -> None:
        await self._wrapper.patch(f"/members/profile-posts/{validate_id(profile_post_id)}", {"message": message})

    async def delete_profile_post(self, profile_post_id: int) -> None:
        await self._wrapper.delete(f"/members/profile-posts/{validate_id(profile_post_id)}")

