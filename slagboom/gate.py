"""Slagboom: HTTP basic authentication gate for Starlette.

Requests for a path on the skip list go straight through. Every other
request needs basic authentication credentials that the verifier accepts.
The verifier result is published as ``scope["auth"]`` and ``scope["user"]``
(so ``request.auth`` and ``request.user`` in the endpoints) and mirrored
as the request headers ``auth`` and ``user``.
"""

import base64
import binascii
import inspect
import json
from typing import Any, Protocol

from starlette import status
from starlette.authentication import BaseUser
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocket

from .log import sublogger
from .skiplist import SkipList

PUBLISHED_KEYS = ("auth", "user")
REFUSED_DETAIL = "Authentication required"


class CredentialVerifier(Protocol):
    """Turns a login and password into a user, or something empty on failure.

    `verify_credentials` may be a plain function (it runs in a worker
    thread) or a coroutine function.
    """

    def verify_credentials(self, login: str, password: str) -> Any: ...


def basic_credentials(headers: Headers) -> tuple[str, str] | None:
    """Login and password from the Authorization header."""
    auth = headers.get("Authorization")
    if not auth:
        return None
    try:
        scheme, credentials = auth.split()
        if scheme.lower() != "basic":
            return None
        decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError, binascii.Error) as exc:
        sublogger("gate").debug(
            "Problem getting credentials: {}", exc.__class__.__name__
        )
        return None
    login, _, password = decoded.partition(":")
    return login, password


def route_path(scope: Scope) -> str:
    """Request path relative to where the app is mounted."""
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if root_path and (path == root_path or path.startswith(root_path + "/")):
        return path[len(root_path):] or "/"
    return path


def header_value(result: Any) -> bytes:
    """Text form of a verifier result, for the mirrored headers."""
    if isinstance(result, BaseUser):
        text = result.display_name
    elif isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, default=str, separators=(",", ":"))
    return text.encode("latin-1", errors="replace")


class BasicAuthGate:
    """ASGI middleware for HTTP basic authentication with a skip list.

    Pass a `SkipList` as `skip` to keep changing it after the middleware
    stack is built, or use the *_skip methods on the gate itself.
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: CredentialVerifier,
        skip: SkipList | list[str] | tuple[str, ...] = (),
        realm: str = "Slagboom",
        publish_headers: bool = True,
    ) -> None:
        """Gate in front of `app`, using `verifier` for the credentials."""
        self.app = app
        self.verifier = verifier
        self.skip = skip if isinstance(skip, SkipList) else SkipList(skip)
        self.realm = realm
        self.publish_headers = publish_headers
        self.logger = sublogger("gate")

    # skip list

    def set_skip(self, patterns: list[str] | tuple[str, ...]) -> None:
        """Replace the skip list (ignored unless a list of strings)."""
        self.skip.set(patterns)

    def erase_skip(self) -> None:
        """Empty the skip list."""
        self.skip.erase()

    def add_skip(self, pattern: str) -> None:
        """Skip one more pattern."""
        self.skip.add(pattern)

    def remove_skip(self, pattern: str) -> None:
        """Stop skipping every occurrence of the pattern."""
        self.skip.remove(pattern)

    def get_skip(self) -> list[str]:
        """Current skip patterns."""
        return self.skip.get()

    def is_skip(self, path: str) -> bool:
        """Does the path bypass authentication."""
        return self.skip.matches(path)

    # request handling

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Skip, or refuse, or publish the user and continue."""
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if self.is_skip(route_path(scope)):
            await self.app(scope, receive, send)
            return

        conn = HTTPConnection(scope)
        credentials = basic_credentials(conn.headers)
        if credentials is None or not all(credentials):
            self.logger.info("No credentials for {}", scope["path"])
            await self.refuse(scope, receive, send)
            return

        login, password = credentials
        result = await self.verify(login, password)
        if not result:
            self.logger.warning("Invalid credentials for {}", login)
            await self.refuse(scope, receive, send)
            return

        self.publish(scope, result)
        await self.app(scope, receive, send)

    async def verify(self, login: str, password: str) -> Any:
        """Ask the verifier, a verifier error counts as a failed login."""
        verify = self.verifier.verify_credentials
        try:
            if inspect.iscoroutinefunction(verify):
                return await verify(login, password)
            return await run_in_threadpool(verify, login, password)
        except Exception:
            self.logger.exception("Verifier failed for {}", login)
            return None

    def publish(self, scope: Scope, result: Any) -> None:
        """Put the verifier result in the scope and the request headers."""
        for key in PUBLISHED_KEYS:
            scope[key] = result
        if self.publish_headers:
            value = header_value(result)
            names = [key.encode("latin-1") for key in PUBLISHED_KEYS]
            scope["headers"] = [
                (k, v) for k, v in scope.get("headers", []) if k.lower() not in names
            ] + [(name, value) for name in names]

    async def refuse(self, scope: Scope, receive: Receive, send: Send) -> None:
        """401 for http, policy violation close for websockets."""
        if scope["type"] == "websocket":
            websocket = WebSocket(scope, receive=receive, send=send)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        response = JSONResponse(
            {"code": status.HTTP_401_UNAUTHORIZED, "detail": REFUSED_DETAIL},
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )
        await response(scope, receive, send)


def middleware(
    verifier: CredentialVerifier,
    skip: SkipList | list[str] | tuple[str, ...] = (),
    **options,
) -> Middleware:
    """Gate as Starlette middleware: ``Starlette(middleware=[middleware(...)])``."""
    return Middleware(BasicAuthGate, verifier=verifier, skip=skip, **options)
