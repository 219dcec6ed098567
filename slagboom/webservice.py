"""Slagboom webservice: status and skip list management behind the gate."""

from starlette import status
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from . import __version__
from .gate import header_value
from .log import sublogger
from .skiplist import SkipList


def published_user(request: Request) -> str | None:
    """Text form of the user the gate published, None on skipped paths."""
    if "user" not in request.scope:
        return None
    return header_value(request.scope["user"]).decode("latin-1")


class SlagboomService:
    """Slagboom Webservice."""

    def __init__(self, skip: SkipList) -> None:
        """Slagboom Webservice, managing the given skip list."""
        self._logger = sublogger("webservice")
        self.skip = skip
        self.routes = [
            Route("/_ping", self.ping, methods=["GET", "HEAD"]),
            Route("/_whoami", self.whoami, methods=["GET"]),
            Route("/_skip", self.skip_list, methods=["GET", "PUT", "POST", "DELETE"]),
        ]

    async def ping(self, request: Request):
        """Ping: show that the service works and return version info."""
        return JSONResponse(
            {"app": "Slagboom", "version": __version__, "user": published_user(request)},
            status_code=status.HTTP_200_OK,
        )

    async def whoami(self, request: Request):
        """The authenticated user, as published in the scope and the headers."""
        return JSONResponse(
            {"user": published_user(request), "header": request.headers.get("user")},
            status_code=status.HTTP_200_OK,
        )

    async def skip_list(self, request: Request):
        """Show or change the skip list.

        GET: show
        PUT: replace with the json body (anything but a list is ignored)
        POST: add the pattern from query parameter `pattern`
        DELETE: remove query parameter `pattern`, or everything without it
        """
        pattern = request.query_params.get("pattern")
        code = status.HTTP_200_OK

        if request.method == "PUT":
            try:
                patterns = await request.json()
            except ValueError as exc:
                raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid json") from exc
            self.skip.set(patterns)
            self._logger.info("Skip list replaced by {}", published_user(request))
        elif request.method == "POST":
            if not pattern:
                raise HTTPException(status.HTTP_400_BAD_REQUEST, "Pattern missing")
            self.skip.add(pattern)
            self._logger.info("Skip {} added by {}", pattern, published_user(request))
            code = status.HTTP_201_CREATED
        elif request.method == "DELETE":
            if pattern:
                self.skip.remove(pattern)
                self._logger.info("Skip {} removed by {}", pattern, published_user(request))
            else:
                self.skip.erase()
                self._logger.info("Skip list erased by {}", published_user(request))

        items = self.skip.get()
        return JSONResponse({"count": len(items), "items": items}, status_code=code)
