import json

import pytest

from mcmapi.cli import app
from mcmapi.core.config import AppConfig
from mcmapi.services.transport import HTTPResponse
from mcmapi.services.wrapper import APIWrapper


class StubTransport:
    def __init__(self, routes) -> None:
        self.routes = routes
        self.paths = []

    async def send(self, request):
        self.paths.append(request.path)
        status, payload = self.routes.get(request.path, (404, {"result": "error", "error": {"message": "missing"}}))
        return HTTPResponse(status_code=status, headers={}, content=json.dumps(payload).encode())

    async def aclose(self):
        return None


def _dispatcher(routes):
    transport = StubTransport(routes)
    session = app.CliSession(wrapper=APIWrapper.build(AppConfig(), transport=transport))
    return session, transport, app.CommandDispatcher(session)


@pytest.mark.parametrize(
    "argv,expected_verbose,expected_tokens",
    [
        ([], False, []),
        (["-v", "member", "5"], True, ["member", "5"]),
        (["member", "--verbose", "self"], True, ["member", "self"]),
        (["ping", "--help"], False, ["help"]),
    ],
)
def test_extract_options(argv, expected_verbose, expected_tokens):
    verbose, tokens = app._extract_options(argv)
    assert verbose is expected_verbose
    assert tokens == expected_tokens


def test_member_command_fetches_by_id(capsys):
    member = {"member_id": 5, "username": "Steve", "join_date": 0, "feedback_positive": 3, "banned": True}
    session, transport, dispatcher = _dispatcher({"/members/5": (200, {"result": "success", "data": member})})

    with session:
        assert dispatcher.execute(["member", "5"]) == 0

    output = capsys.readouterr().out
    assert transport.paths == ["/members/5"]
    assert "MEMBER #5 Steve" in output
    assert "feedback=+3" in output
    assert "flags: banned" in output


def test_member_command_uses_name_lookup_for_text():
    member = {"member_id": 9, "username": "Alex"}
    session, transport, dispatcher = _dispatcher(
        {"/members/username/Alex": (200, {"result": "success", "data": member})}
    )

    with session:
        dispatcher.execute(["member", "Alex"])

    assert transport.paths == ["/members/username/Alex"]


def test_api_errors_propagate_from_dispatcher():
    session, _, dispatcher = _dispatcher({})

    with session:
        with pytest.raises(app.APIError):
            dispatcher.execute(["resource", "12"])


def test_budget_command_reports_both_kinds(capsys):
    session, transport, dispatcher = _dispatcher({})

    with session:
        dispatcher.execute(["budget"])

    output = capsys.readouterr().out
    assert "read: remaining=60" in output
    assert "write: remaining=60" in output
    assert transport.paths == []


def test_unknown_command_and_bad_arguments_raise_command_error():
    session, _, dispatcher = _dispatcher({})

    with session:
        with pytest.raises(app.CommandError):
            dispatcher.execute(["buy", "INFY"])
        with pytest.raises(app.CommandError):
            dispatcher.execute(["threads", "zero"])
