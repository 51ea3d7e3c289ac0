import asyncio

import pytest

from mcmapi.core.models import LicenseChange, ProfileChange, SortOptions
from mcmapi.services.alerts import AlertsHelper
from mcmapi.services.conversations import ConversationsHelper
from mcmapi.services.members import MembersHelper
from mcmapi.services.resources import ResourceHelper
from mcmapi.services.threads import ThreadsHelper


class StubWrapper:
    """Captures helper calls instead of scheduling them."""

    def __init__(self, data=None) -> None:
        self.data = data
        self.calls = []

    async def get(self, path, sort=None):
        self.calls.append(("GET", path, sort.to_params() if sort else None))
        return self.data

    async def post(self, path, body):
        self.calls.append(("POST", path, body))
        return self.data

    async def patch(self, path, body):
        self.calls.append(("PATCH", path, body))
        return self.data

    async def delete(self, path):
        self.calls.append(("DELETE", path, None))
        return self.data


def _helpers(data=None):
    wrapper = StubWrapper(data)
    return wrapper, {
        "members": MembersHelper(wrapper),  # type: ignore[arg-type]
        "resources": ResourceHelper(wrapper),  # type: ignore[arg-type]
        "alerts": AlertsHelper(wrapper),  # type: ignore[arg-type]
        "conversations": ConversationsHelper(wrapper),  # type: ignore[arg-type]
        "threads": ThreadsHelper(wrapper),  # type: ignore[arg-type]
    }


def test_fetch_member_decodes_payload():
    wrapper, helpers = _helpers(
        {
            "member_id": 87939,
            "username": "Majored",
            "join_date": 1466082535,
            "feedback_positive": 10,
            "feedback_negative": 2,
            "unknown_field": "ignored",
        }
    )

    member = asyncio.run(helpers["members"].fetch_by_id(87939))

    assert wrapper.calls == [("GET", "/members/87939", None)]
    assert member.username == "Majored"
    assert member.feedback_total == 8
    assert member.last_activity_date is None


def test_fetch_member_by_name_escapes_path():
    wrapper, helpers = _helpers({"member_id": 1, "username": "a b/c"})

    asyncio.run(helpers["members"].fetch_by_name("a b/c"))

    assert wrapper.calls[0][1] == "/members/username/a%20b%2Fc"


def test_invalid_identifiers_are_rejected_before_scheduling():
    wrapper, helpers = _helpers()

    with pytest.raises(ValueError):
        asyncio.run(helpers["members"].fetch_by_id(0))
    with pytest.raises(ValueError):
        asyncio.run(helpers["resources"].versions.fetch(5, -1))

    assert wrapper.calls == []


def test_modify_self_sends_only_set_fields():
    wrapper, helpers = _helpers()

    asyncio.run(helpers["members"].modify_self(ProfileChange(about_me="hello")))

    assert wrapper.calls == [("PATCH", "/members/self", {"about_me": "hello"})]
    with pytest.raises(ValueError):
        asyncio.run(helpers["members"].modify_self(ProfileChange()))


def test_resource_sub_helpers_build_nested_paths():
    wrapper, helpers = _helpers([])
    resources = helpers["resources"]

    async def scenario():
        await resources.downloads.list_by_version(10, 4, SortOptions(page=1))
        await resources.reviews.fetch_by_member(10, 22)
        await resources.updates.latest(10)
        await resources.versions.delete(10, 3)
        await resources.purchases.list(10)

    wrapper.data = {}
    asyncio.run(scenario())

    assert wrapper.calls == [
        ("GET", "/resources/10/downloads/versions/4", [("page", "1")]),
        ("GET", "/resources/10/reviews/members/22", None),
        ("GET", "/resources/10/updates/latest", None),
        ("DELETE", "/resources/10/versions/3", None),
        ("GET", "/resources/10/purchases", None),
    ]


def test_issue_license_returns_identifier():
    wrapper, helpers = _helpers(512)

    license_id = asyncio.run(
        helpers["resources"].licenses.issue(10, LicenseChange(purchaser_id=99, active=True, start_date=1))
    )

    assert license_id == 512
    assert wrapper.calls == [
        ("POST", "/resources/10/licenses", {"purchaser_id": 99, "active": True, "start_date": 1, "permanent": True})
    ]


def test_list_resources_decodes_each_entry():
    wrapper, helpers = _helpers([{"resource_id": 1, "title": "A"}, {"resource_id": 2, "title": "B"}])

    resources = asyncio.run(helpers["resources"].list())

    assert [resource.title for resource in resources] == ["A", "B"]


def test_start_conversation_requires_recipients():
    wrapper, helpers = _helpers(77)

    assert asyncio.run(helpers["conversations"].start("Hi", "Hello there", [5, 6])) == 77
    assert wrapper.calls[0] == (
        "POST",
        "/conversations",
        {"title": "Hi", "message": "Hello there", "recipient_ids": [5, 6]},
    )
    with pytest.raises(ValueError):
        asyncio.run(helpers["conversations"].start("Hi", "Hello", []))


def test_alerts_mark_as_read_patches_flag():
    wrapper, helpers = _helpers()

    asyncio.run(helpers["alerts"].mark_as_read())

    assert wrapper.calls == [("PATCH", "/alerts", {"read": True})]


def test_thread_reply_posts_message():
    wrapper, helpers = _helpers(1234)

    assert asyncio.run(helpers["threads"].reply(8, "bump")) == 1234
    assert wrapper.calls == [("POST", "/threads/8/replies", {"message": "bump"})]

