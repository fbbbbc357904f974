"""
Shared helpers for client tests: keys, a fake clock and a scripted HTTP server.
"""
import json
from collections import defaultdict, deque
from typing import Any, Callable

import httpx

# Well-known development key (Hardhat account #0); never funded on mainnet
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OPPONENT_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
API_URL = "https://arena.test"


class FakeClock:
    """
    Deterministic clock whose sleep advances time instead of waiting.

    Time is kept in integer milliseconds so repeated 0.1s sleeps add up exactly.
    """

    def __init__(self) -> None:
        self._ms = 0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self._ms / 1000

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._ms += round(seconds * 1000)


Reply = httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]


class ScriptedServer:
    """
    Replays queued replies per (method, path).

    The last reply for a route repeats once its queue runs dry. Every
    request is recorded for assertions.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque[Reply]] = defaultdict(deque)
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> "ScriptedServer":
        self._routes[(method, path)].extend(replies)
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(500, json={"error": f"no route for {request.method} {request.url.path}"})
        reply = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def json_response(status: int, body: Any = None, headers: dict[str, str] | None = None) -> httpx.Response:
    if body is None:
        return httpx.Response(status, headers=headers)
    return httpx.Response(status, content=json.dumps(body).encode(), headers={
        "content-type": "application/json",
        **(headers or {}),
    })


def connect_error() -> httpx.ConnectError:
    return httpx.ConnectError("connection refused")
