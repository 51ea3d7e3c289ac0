"""Command dispatcher and interactive shell for mcmapi."""

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from rich.console import Console
from rich.logging import RichHandler

from ..core.config import AppConfig
from ..core.errors import APIError
from ..core.models import Member, RequestKind, SortOptions
from ..services.wrapper import APIWrapper

console = Console()

PROMPT = "mcm> "


class CommandError(Exception):
    """Raised when command parsing or validation fails."""


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _format_date(epoch: Optional[int]) -> str:
    if not epoch:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d")


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@dataclass(slots=True)
class CliSession:
    """Owns the wrapper and the event loop its scheduler runs on."""

    wrapper: APIWrapper
    loop: asyncio.AbstractEventLoop = field(default_factory=asyncio.new_event_loop)

    @classmethod
    def create(cls, overrides: Optional[dict] = None) -> "CliSession":
        config = AppConfig.load(overrides)
        return cls(wrapper=APIWrapper.build(config))

    def run(self, coro):
        return self.loop.run_until_complete(coro)

    def __enter__(self) -> "CliSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.run(self.wrapper.aclose())
        finally:
            self.loop.close()


class CommandDispatcher:
    """Parse and execute API commands."""

    def __init__(self, session: CliSession) -> None:
        self.session = session
        self.wrapper = session.wrapper

    def execute(self, tokens: Sequence[str]) -> int:
        if not tokens:
            return 0
        command = tokens[0].lower()
        handler = getattr(self, f"do_{command}", None)
        if handler is None:
            raise CommandError(f"Unknown command: {command}")
        return handler(tokens[1:])

    def do_help(self, _: Sequence[str]) -> int:
        console.print(
            "Commands: health | ping | member <id|name|self> | resource <id> | threads [page] | budget | quit"
        )
        console.print("Pass --verbose to log scheduler activity. Ctrl+D or 'quit' exits.")
        return 0

    def do_health(self, _: Sequence[str]) -> int:
        self.session.run(self.wrapper.health())
        console.print(f"[{_timestamp()}] HEALTH ok")
        return 0

    def do_ping(self, _: Sequence[str]) -> int:
        elapsed = self.session.run(self.wrapper.ping())
        console.print(f"[{_timestamp()}] PING {elapsed * 1000:.0f}ms")
        return 0

    def do_member(self, args: Sequence[str]) -> int:
        if len(args) != 1:
            raise CommandError("Usage: member <id|name|self>")
        target = args[0]
        members = self.wrapper.members
        if target.lower() == "self":
            member = self.session.run(members.fetch_self())
        elif target.isdigit():
            member = self.session.run(members.fetch_by_id(self._parse_int(target, "member id", minimum=1)))
        else:
            member = self.session.run(members.fetch_by_name(target))
        self._render_member(member)
        return 0

    def do_resource(self, args: Sequence[str]) -> int:
        if len(args) != 1:
            raise CommandError("Usage: resource <id>")
        resource_id = self._parse_int(args[0], "resource id", minimum=1)
        resource = self.session.run(self.wrapper.resources.fetch(resource_id))
        console.print(f"[{_timestamp()}] RESOURCE #{resource.resource_id} {resource.title}")
        console.print(f"- {resource.tag_line}")
        console.print(
            f"- price={resource.price:.2f} {resource.currency} downloads={resource.download_count} "
            f"reviews={resource.review_count} avg={resource.review_average:.2f}"
        )
        return 0

    def do_threads(self, args: Sequence[str]) -> int:
        page = self._parse_int(args[0], "page", minimum=1) if args else None
        threads = self.session.run(self.wrapper.threads.list(SortOptions(page=page)))
        console.print(f"[{_timestamp()}] THREADS ({len(threads)})")
        if not threads:
            console.print("None")
        for thread in threads:
            console.print(f"- #{thread.thread_id} {thread.title} replies={thread.reply_count} views={thread.view_count}")
        return 0

    def do_budget(self, _: Sequence[str]) -> int:
        console.print(f"[{_timestamp()}] BUDGET")
        for kind in RequestKind:
            remaining, reset_at = self.wrapper.budget(kind).snapshot()
            reset_text = datetime.fromtimestamp(reset_at).strftime("%H:%M:%S") if reset_at else "-"
            console.print(f"- {kind.value}: remaining={remaining} reset={reset_text}")
        return 0

    def do_quit(self, _: Sequence[str]) -> int:
        raise SystemExit(0)

    # Parsing helpers -------------------------------------------------

    def _parse_int(self, token: str, label: str, *, minimum: int = 0) -> int:
        try:
            value = int(token)
        except ValueError as exc:
            raise CommandError(f"Invalid {label}; expected integer") from exc
        if value < minimum:
            raise CommandError(f"{label} must be >= {minimum}")
        return value

    def _render_member(self, member: Member) -> None:
        flags = [name for name in ("banned", "suspended", "restricted", "disabled") if getattr(member, name)]
        console.print(f"[{_timestamp()}] MEMBER #{member.member_id} {member.username}")
        console.print(f"- joined={_format_date(member.join_date)} last_active={_format_date(member.last_activity_date)}")
        console.print(
            f"- posts={member.post_count} resources={member.resource_count} purchases={member.purchase_count} "
            f"feedback={member.feedback_total:+d}"
        )
        if flags:
            console.print(f"- flags: {', '.join(flags)}")


def _extract_options(argv: Sequence[str]) -> Tuple[bool, List[str]]:
    verbose = False
    remaining: List[str] = []
    for arg in argv:
        if arg in {"-v", "--verbose"}:
            verbose = True
            continue
        if arg in {"-h", "--help"}:
            return verbose, ["help"]
        remaining.append(arg)
    return verbose, remaining


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(argv if argv is not None else sys.argv[1:])
    verbose, remaining = _extract_options(argv)
    configure_logging(verbose)

    if not remaining:
        return run_repl()

    with CliSession.create() as session:
        dispatcher = CommandDispatcher(session)
        try:
            return dispatcher.execute(remaining)
        except CommandError as exc:
            console.print(f"Error: {exc}")
            return 1
        except (APIError, ValueError) as exc:
            console.print(f"Error: {exc}")
            return 1


def run_repl() -> int:
    with CliSession.create() as session:
        dispatcher = CommandDispatcher(session)
        console.print("Type 'help' for available commands, 'quit' to exit.")
        while True:
            try:
                raw = input(PROMPT)
            except EOFError:
                console.print("\nExited.")
                return 0
            except KeyboardInterrupt:
                console.print("\nInterrupted. Type 'quit' to exit.")
                continue
            command_line = raw.strip()
            if not command_line:
                continue
            try:
                tokens = shlex.split(command_line)
            except ValueError as exc:
                console.print(f"Parse error: {exc}")
                continue
            if not tokens:
                continue
            if tokens[0].lower() in {"quit", "exit"}:
                console.print("Bye.")
                return 0
            try:
                dispatcher.execute(tokens)
            except CommandError as exc:
                console.print(f"Error: {exc}")
            except SystemExit:
                console.print("Bye.")
                return 0
            except (APIError, ValueError) as exc:
                console.print(f"Error: {exc}")


__all__ = ["run_cli", "run_repl"]
