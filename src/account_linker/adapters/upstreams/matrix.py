"""Matrix client-server API upstream."""

import logging
import uuid
from typing import Any, Optional
from urllib.parse import quote

import httpx

from account_linker.core import (
    CHALLENGE,
    Command,
    Item,
    Link,
    Upstream,
    UpstreamError,
    parse_command,
)

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/_matrix/client/r0"


class MatrixUpstream(Upstream):
    """Receive commands from and post notifications to Matrix rooms.

    Commands are plain text messages starting with the command prefix
    (``!`` by default, since slash commands are taken by clients).
    """

    kind = "Matrix"

    def __init__(
        self,
        login: str,
        password: str,
        homeserver: str = "https://matrix.org",
        command_prefix: str = "!",
        skip_backlog: bool = True,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize Matrix upstream.

        Args:
            login: Bot user login
            password: Bot user password
            homeserver: Base URL of the homeserver
            command_prefix: Prefix marking messages addressed to the bot
            skip_backlog: Ignore commands found by the first sync after start
            timeout: Request timeout in seconds
            client: Shared HTTP client; one is created when omitted
        """
        self.login = login
        self.password = password
        self.api_base = homeserver.rstrip("/") + API_PREFIX
        self.command_prefix = command_prefix
        self.skip_backlog = skip_backlog
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.access_token = ""
        self.user_id = ""
        self.last_batch = ""

    async def close(self) -> None:
        await self.client.aclose()

    async def connect(self) -> None:
        """Log in with password unless an access token is already held."""
        if self.access_token:
            return
        if not self.login or not self.password:
            raise UpstreamError("matrix.login and matrix.password must be supplied in config")

        payload = {
            "type": "m.login.password",
            "user": self.login,
            "password": self.password,
        }
        answer = await self._request("POST", "/login", json=payload, auth=False)

        token = answer.get("access_token")
        if not token:
            raise UpstreamError("Login answer contains no access token")
        self.access_token = token
        self.user_id = answer.get("user_id", "")
        LOGGER.info("Logged in to Matrix as %s", self.user_id or self.login)

    async def check_commands(self) -> list[Command]:
        """Sync with the homeserver, join invited rooms and collect commands."""
        params: dict[str, Any] = {"timeout": 0}
        first_sync = not self.last_batch
        if not first_sync:
            params["since"] = self.last_batch

        answer = await self._request("GET", "/sync", params=params)
        self.last_batch = answer.get("next_batch", self.last_batch)

        rooms = answer.get("rooms", {})
        for room_id in rooms.get("invite", {}):
            await self._join(room_id)

        if first_sync and self.skip_backlog:
            LOGGER.debug("Skipping command backlog of the first sync")
            return []

        return self.capture_commands(rooms.get("join", {}))

    def capture_commands(self, joined_rooms: dict[str, Any]) -> list[Command]:
        """Parse commands from room timelines, skipping everything but text messages."""
        commands: list[Command] = []
        for room_id, room_state in joined_rooms.items():
            events = room_state.get("timeline", {}).get("events", [])
            for event in events:
                if event.get("type") != "m.room.message":
                    continue
                sender = event.get("sender", "")
                if self.user_id and sender == self.user_id:
                    continue

                content = event.get("content")
                if not isinstance(content, dict) or content.get("msgtype") != "m.text":
                    continue
                body = content.get("body")
                # Clients are free to send malformed events
                if not isinstance(body, str) or not body.startswith(self.command_prefix):
                    continue

                command = parse_command(
                    body[len(self.command_prefix):],
                    upstream_kind=self.kind,
                    chat_id=room_id,
                    user_id=sender,
                )
                if command is not None:
                    commands.append(command)
        return commands

    async def push_update(self, chat_id: str, item: Item) -> None:
        """Post an item as formatted ``m.notice``.

        Uses the ``org.matrix.custom.html`` format, which clients render as HTML.
        """
        content = {
            "msgtype": "m.notice",
            "body": item.as_text(),
            "format": "org.matrix.custom.html",
            "formatted_body": item.as_html(),
        }
        event_id = await self._send(chat_id, content)
        LOGGER.info("Message posted with event id %s", event_id)

    async def report_duplicate(self, link: Link) -> None:
        name = await self.display_name(link.user_id)
        await self.reply(link.chat_id, f"{name}: Link to {link.linked_user_id} is already present!")

    async def report_pending_verification(self, link: Link) -> None:
        name = await self.display_name(link.user_id)
        message = (
            f"{name}: You should prove it's you! "
            f"Write '{CHALLENGE}' without quotes in {link.adapter_kind}!"
        )
        await self.reply(link.chat_id, message)

    async def report_verified(self, link: Link) -> None:
        name = await self.display_name(link.user_id)
        await self.reply(link.chat_id, f"{name}: Link to {link.linked_user_id} created!")

    async def reply(self, chat_id: str, text: str) -> None:
        """Post a plain ``m.notice`` message."""
        event_id = await self._send(chat_id, {"msgtype": "m.notice", "body": text})
        LOGGER.info("Message posted with event id %s", event_id)

    async def display_name(self, user_id: str) -> str:
        """Get a user's display name, falling back to the user id. Auth is not required."""
        try:
            answer = await self._request(
                "GET", f"/profile/{quote(user_id, safe='')}/displayname", auth=False
            )
        except UpstreamError as e:
            LOGGER.debug("No display name for %s: %s", user_id, e)
            return user_id
        return answer.get("displayname") or user_id

    async def _join(self, room_id: str) -> None:
        # next_batch is already advanced, so a failed join must not drop the commands
        try:
            await self._request("POST", f"/join/{quote(room_id, safe='')}", json={})
        except UpstreamError as e:
            LOGGER.warning("Could not join room %s: %s", room_id, e)
            return
        LOGGER.info("Joined room %s", room_id)

    async def _send(self, room_id: str, content: dict[str, Any]) -> str:
        txn_id = uuid.uuid4().hex
        path = f"/rooms/{quote(room_id, safe='')}/send/m.room.message/{txn_id}"
        answer = await self._request("PUT", path, json=content)
        event_id = answer.get("event_id")
        if not event_id:
            raise UpstreamError("Answer must contain event id in case of success")
        return event_id

    async def _request(self, method: str, path: str, auth: bool = True, **kwargs: Any) -> dict:
        headers = {}
        if auth:
            if not self.access_token:
                raise UpstreamError("Not connected")
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = await self.client.request(method, self.api_base + path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Matrix request {method} {path} failed: {e}") from e

        if not response.is_success:
            if response.status_code == 401 and auth:
                # Token expired or revoked, log in again next cycle
                self.access_token = ""
            raise UpstreamError(f"Matrix returned invalid code: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Matrix returned invalid JSON: {e}") from e
