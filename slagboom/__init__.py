"""Slagboom.

HTTP basic authentication gate for Starlette, with a skip list of paths
that need no authentication.
"""

__date__ = "2026-10-19"
__version__ = "1.0"

from starlette import status
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import MainConfig
from .gate import BasicAuthGate, CredentialVerifier, middleware
from .skiplist import SkipList
from .verifiers import AccountsVerifier, DictAccounts, SqliteAccounts
from .webservice import SlagboomService

__all__ = [
    "AccountsVerifier",
    "BasicAuthGate",
    "CredentialVerifier",
    "DictAccounts",
    "SkipList",
    "SqliteAccounts",
    "make_app",
    "middleware",
]


async def json_error(request: Request, exc: HTTPException):
    """Error handler to show json instead of text."""
    code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, "detail", None)
    if detail is None:
        detail = str(exc)
    return JSONResponse(
        {"code": code, "detail": detail},
        status_code=code,
        headers=getattr(exc, "headers", None),
    )


def make_app(
    config: MainConfig | None = None,
    *,
    verifier: CredentialVerifier | None = None,
    debug: bool = False,
) -> Starlette:
    """Create the Starlette app."""
    if config is None:
        config = MainConfig()
    if verifier is None:
        verifier = AccountsVerifier(DictAccounts(config.accounts))

    skip = SkipList(config.gate.skip)
    ws = SlagboomService(skip)

    app = Starlette(
        debug=debug,
        routes=ws.routes,
        middleware=[
            middleware(
                verifier,
                skip=skip,
                realm=config.gate.realm,
                publish_headers=config.gate.publish_headers,
            )
        ],
        exception_handlers={
            HTTPException: json_error,
            404: json_error,
            500: json_error,
        },
    )
    app.state.skip = skip
    return app
