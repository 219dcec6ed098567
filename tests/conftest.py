"""Shared fixtures: a small app behind the gate and verifiers to drive it."""

import base64

import pytest
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.testclient import TestClient

from slagboom.gate import middleware
from slagboom.verifiers import crypt_context


class RecordingVerifier:
    """Returns a fixed result and remembers every call."""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def verify_credentials(self, login, password):
        self.calls.append((login, password))
        return self.result


class AsyncRecordingVerifier(RecordingVerifier):
    async def verify_credentials(self, login, password):
        self.calls.append((login, password))
        return self.result


class FailingVerifier:
    def verify_credentials(self, login, password):
        raise RuntimeError("credential store unreachable")


def basic(login: str, password: str) -> dict[str, str]:
    """Authorization header for basic authentication."""
    token = base64.b64encode(f"{login}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


async def echo(request):
    """What the gate left for the endpoint."""
    return JSONResponse(
        {
            "path": request.url.path,
            "auth": request.scope.get("auth"),
            "user": request.scope.get("user"),
            "header": request.headers.get("user"),
        }
    )


async def ws_echo(websocket):
    await websocket.accept()
    await websocket.send_json({"user": websocket.scope.get("user")})
    await websocket.close()


def gate_app(verifier, skip=(), **options) -> Starlette:
    """Echo app behind the gate."""
    return Starlette(
        routes=[
            WebSocketRoute("/ws", ws_echo),
            Route("/{rest:path}", echo),
        ],
        middleware=[middleware(verifier, skip=skip, **options)],
    )


@pytest.fixture
def verifier() -> RecordingVerifier:
    return RecordingVerifier({"id": 1, "name": "alice"})


@pytest.fixture
def make_client():
    """Factory for a TestClient on the echo app."""

    def factory(verifier, skip=(), **options) -> TestClient:
        return TestClient(gate_app(verifier, skip, **options))

    return factory


@pytest.fixture(scope="session")
def alice_hash() -> str:
    return crypt_context.hash("secret")
