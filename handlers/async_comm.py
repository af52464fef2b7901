"""Asynchronous HTTP client used to reach the speech provider.

``AsyncHttp`` wraps a single aiohttp session. Responses are decoded by content-type
handlers, so JSON error bodies and raw audio bodies go through the same request path.
Transport failures are translated into the ``AsyncCommError`` family.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Final, Literal, Self

import aiohttp
from aiohttp.client import ClientSession

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Mapping

    from aiohttp.client import ClientResponse


__all__: list[str] = ["AsyncCommError", "AsyncCommInvalidContentTypeError", "AsyncCommTimeoutError", "AsyncHttp"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

HTTPMethod = Literal["GET", "POST"]

CONNECT_TIMEOUT: Final[float] = 3.0

# Headers that must never reach the log
_REDACTED_HEADERS: Final[frozenset[str]] = frozenset({"authorization"})


def _redact(headers: Mapping[str, str] | None) -> dict[str, str]:
    return {k: ("***" if k.lower() in _REDACTED_HEADERS else v) for k, v in (headers or {}).items()}


class AsyncHttp:
    """Asynchronous HTTP client with per-content-type response handlers.

    Args:
        headers (Mapping[str, str] | None): Headers sent with every request of the session.

    The default handlers decode ``text/plain`` and ``text/html`` to ``str`` and parse
    ``application/json``. Callers register handlers for any other body they expect.
    """

    def __init__(self, *, headers: Mapping[str, str] | None = None) -> None:
        logger.info("%s initializing", self.__class__.__name__)
        self.__session: ClientSession | None = None
        self.headers: dict[str, str] = dict(headers or {})
        self.content_handlers: dict[str, Callable[[bytes], Any]] = {}

        self.add_handler("text/plain", lambda x: x.decode("utf-8"))
        self.add_handler("text/html", lambda x: x.decode("utf-8"))
        self.add_handler("application/json", lambda x: json.loads(x.decode("utf-8")))

    async def __aenter__(self) -> Self:
        logger.debug("%s entering context", self.__class__.__name__)
        self.initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        _ = exc_type, exc_val, exc_tb
        logger.debug("%s exiting context", self.__class__.__name__)
        await self.close()

    def initialize_session(self) -> None:
        """Create the aiohttp session unless an open one exists. Requires a running loop."""
        if self.__session is None or self.__session.closed:
            self.__session = ClientSession(headers=self.headers)
            logger.debug("%s session initialized (headers: %s)", self.__class__.__name__, _redact(self.headers))

    @property
    def session(self) -> ClientSession:
        """The open aiohttp session, created on first use."""
        self.initialize_session()
        if self.__session is None:
            msg = "Session could not be initialized"
            raise RuntimeError(msg)
        return self.__session

    @property
    def closed(self) -> bool:
        return self.__session is None or self.__session.closed

    async def close(self) -> None:
        """Close the aiohttp session if it is open."""
        if self.__session and not self.__session.closed:
            await self.__session.close()
            logger.info("%s session closed", self.__class__.__name__)
        self.__session = None

    async def get(self, *, url: str, total_timeout: float = 10.0, headers: Mapping[str, str] | None = None) -> Any:
        """Perform a GET request and return the decoded body."""
        return await self._request("GET", url=url, total_timeout=total_timeout, headers=headers)

    async def post(
        self,
        *,
        url: str,
        data: Any | None = None,
        total_timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Perform a POST request with a JSON body.

        Args:
            url (str): Target URL.
            data (Any | None): JSON-serializable request body.
            total_timeout (float): Total timeout in seconds; 0 or less disables it.
            headers (Mapping[str, str] | None): Extra headers for this request only.

        Returns:
            Any: The body decoded by the handler registered for its content type.
        """
        return await self._request("POST", url=url, total_timeout=total_timeout, headers=headers, json=data)

    async def decode_response(self, resp: ClientResponse) -> Any:
        """Decode ``resp`` with the handler registered for its ``Content-Type``.

        Returns:
            Any: The decoded body, or None for an empty body.

        Raises:
            AsyncCommInvalidContentTypeError: No handler is registered for the content type.
        """
        content_type: str = resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
        raw: bytes = await resp.read()
        logger.debug("'Content-Type': '%s', %d byte(s)", content_type, len(raw))
        if not raw:
            return None

        handler: Callable[[bytes], Any] | None = self.content_handlers.get(content_type)
        if handler:
            return handler(raw)

        msg: str = f"Unknown Content-Type '{content_type}'"
        raise AsyncCommInvalidContentTypeError(msg)

    def add_handler(self, content_type: str, handler: Callable[[bytes], Any]) -> None:
        if self.content_handlers.get(content_type):
            logger.warning("Handler for content type '%s' already exists, replacing it", content_type)
        self.content_handlers[content_type] = handler

    def list_handlers(self) -> list[str]:
        handlers: list[str] = list(self.content_handlers)
        logger.debug("Handlers registered for content types '%s'", handlers)
        return handlers

    @staticmethod
    def _timeout(total_timeout: float) -> aiohttp.ClientTimeout:
        if total_timeout <= 0:
            return aiohttp.ClientTimeout(total=None)
        if total_timeout < CONNECT_TIMEOUT:
            # a connect timeout longer than the total would never fire
            return aiohttp.ClientTimeout(total=total_timeout)
        return aiohttp.ClientTimeout(connect=CONNECT_TIMEOUT, total=total_timeout)

    async def _request(
        self,
        method: HTTPMethod,
        *,
        url: str,
        total_timeout: float,
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> Any:
        logger.debug("[%s] url=%s timeout=%s headers=%s", method, url, total_timeout, _redact(headers))
        try:
            async with self.session.request(
                method=method,
                url=url,
                timeout=self._timeout(total_timeout),
                headers=headers,
                **kwargs,
            ) as resp:
                if resp.status >= 400:
                    detail: str = await self._error_detail(resp)
                    msg = f"Error response from the server: status='{resp.status}'"
                    raise AsyncCommError(f"{msg}, detail='{detail}'" if detail else msg, status=resp.status)
                return await self.decode_response(resp)

        except TimeoutError as err:
            logger.debug(err)
            msg = "Timeout due to a lack of response from the server."
            raise AsyncCommTimeoutError(msg) from err
        except ConnectionResetError as err:
            logger.debug(err)
            msg = "The connection to the server has been disconnected."
            raise AsyncCommError(msg) from err
        except aiohttp.ClientConnectorError as err:
            logger.debug(err)
            msg = "The server could not be reached."
            raise AsyncCommError(msg) from err
        except aiohttp.ClientResponseError as err:
            logger.debug(err)
            msg = "Error response from the server."
            raise AsyncCommError(msg, status=err.status) from err
        except aiohttp.ClientError as err:
            logger.debug(err)
            msg = f"HTTP client error: {err}"
            raise AsyncCommError(msg) from err

    @staticmethod
    async def _error_detail(resp: ClientResponse) -> str:
        """Best-effort message extracted from an error body."""
        try:
            body: Any = await resp.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            return ""
        if isinstance(body, dict):
            error: Any = body.get("error")
            if isinstance(error, dict):
                return str(error.get("message", ""))
            if error:
                return str(error)
        return ""


class AsyncCommError(Exception):
    """Base class for HTTP communication errors.

    Attributes:
        msg (str): Human readable message.
        status (int | None): HTTP status, when the server answered.
    """

    def __init__(self, msg: str | BaseException, *, status: int | None = None) -> None:
        self.msg: str = str(msg)
        self.status: int | None = status
        super().__init__(self.msg)


class AsyncCommTimeoutError(AsyncCommError):
    """The request did not complete within its timeout."""


class AsyncCommInvalidContentTypeError(AsyncCommError):
    """The response carried a content type with no registered handler."""
