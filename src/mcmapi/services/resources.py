"""Resource endpoints and their nested collections."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ..core.models import (
    BasicResource,
    Download,
    License,
    LicenseChange,
    Purchase,
    Resource,
    Review,
    SortOptions,
    Update,
    Version,
    validate_id,
)

if TYPE_CHECKING:
    from .wrapper import APIWrapper


class _ResourceEndpoint:
    def __init__(self, wrapper: "APIWrapper") -> None:
        self._wrapper = wrapper

    @staticmethod
    def _path(resource_id: int, *parts: object) -> str:
        suffix = "".join(f"/{part}" for part in parts)
        return f"/resources/{validate_id(resource_id)}{suffix}"


class DownloadHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[Download]:
        return Download.from_list(await self._wrapper.get(self._path(resource_id, "downloads"), sort))

    async def list_by_member(
        self, resource_id: int, member_id: int, sort: Optional[SortOptions] = None
    ) -> List[Download]:
        path = self._path(resource_id, "downloads", "members", validate_id(member_id))
        return Download.from_list(await self._wrapper.get(path, sort))

    async def list_by_version(
        self, resource_id: int, version_id: int, sort: Optional[SortOptions] = None
    ) -> List[Download]:
        path = self._path(resource_id, "downloads", "versions", validate_id(version_id))
        return Download.from_list(await self._wrapper.get(path, sort))


class LicenseHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[License]:
        return License.from_list(await self._wrapper.get(self._path(resource_id, "licenses"), sort))

    async def fetch(self, resource_id: int, license_id: int) -> License:
        path = self._path(resource_id, "licenses", validate_id(license_id))
        return License.from_payload(await self._wrapper.get(path))

    async def fetch_by_member(self, resource_id: int, member_id: int) -> License:
        path = self._path(resource_id, "licenses", "members", validate_id(member_id))
        return License.from_payload(await self._wrapper.get(path))

    async def issue(self, resource_id: int, change: LicenseChange) -> int:
        """Issue a license and return its identifier."""

        if change.purchaser_id is None:
            raise ValueError("purchaser_id is required to issue a license")
        data = await self._wrapper.post(self._path(resource_id, "licenses"), change.to_body())
        return int(data)

    async def modify(self, resource_id: int, license_id: int, change: LicenseChange) -> None:
        path = self._path(resource_id, "licenses", validate_id(license_id))
        await self._wrapper.patch(path, change.to_body())


class PurchaseHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[Purchase]:
        return Purchase.from_list(await self._wrapper.get(self._path(resource_id, "purchases"), sort))

    async def fetch(self, resource_id: int, purchase_id: int) -> Purchase:
        path = self._path(resource_id, "purchases", validate_id(purchase_id))
        return Purchase.from_payload(await self._wrapper.get(path))


class ReviewHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[Review]:
        return Review.from_list(await self._wrapper.get(self._path(resource_id, "reviews"), sort))

    async def fetch_by_member(self, resource_id: int, member_id: int) -> Review:
        path = self._path(resource_id, "reviews", "members", validate_id(member_id))
        return Review.from_payload(await self._wrapper.get(path))

    async def respond(self, resource_id: int, review_id: int, message: str) -> None:
        path = self._path(resource_id, "reviews", validate_id(review_id))
        await self._wrapper.patch(path, {"message": message})


class UpdateHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[Update]:
        return Update.from_list(await self._wrapper.get(self._path(resource_id, "updates"), sort))

    async def latest(self, resource_id: int) -> Update:
        return Update.from_payload(await self._wrapper.get(self._path(resource_id, "updates", "latest")))

    async def fetch(self, resource_id: int, update_id: int) -> Update:
        path = self._path(resource_id, "updates", validate_id(update_id))
        return Update.from_payload(await self._wrapper.get(path))

    async def delete(self, resource_id: int, update_id: int) -> None:
        await self._wrapper.delete(self._path(resource_id, "updates", validate_id(update_id)))


class VersionHelper(_ResourceEndpoint):
    async def list(self, resource_id: int, sort: Optional[SortOptions] = None) -> List[Version]:
        return Version.from_list(await self._wrapper.get(self._path(resource_id, "versions"), sort))

    async def latest(self, resource_id: int) -> Version:
        return Version.from_payload(await self._wrapper.get(self._path(resource_id, "versions", "latest")))

    async def fetch(self, resource_id: int, version_id: int) -> Version:
        path = self._path(resource_id, "versions", validate_id(version_id))
        return Version.from_payload(await self._wrapper.get(path))

    async def delete(self, resource_id: int, version_id: int) -> None:
        await self._wrapper.delete(self._path(resource_id, "versions", validate_id(version_id)))


class ResourceHelper(_ResourceEndpoint):
    """Wraps the /resources endpoints."""

    def __init__(self, wrapper: "APIWrapper") -> None:
        super().__init__(wrapper)
        self.downloads = DownloadHelper(wrapper)
        self.licenses = LicenseHelper(wrapper)
        self.purchases = PurchaseHelper(wrapper)
        self.reviews = ReviewHelper(wrapper)
        self.updates = UpdateHelper(wrapper)
        self.versions = VersionHelper(wrapper)

    async def list(self, sort: Optional[SortOptions] = None) -> List[BasicResource]:
        return BasicResource.from_list(await self._wrapper.get("/resources", sort))

    async def fetch(self, resource_id: int) -> Resource:
        return Resource.from_payload(await self._wrapper.get(self._path(resource_id)))
