"""
Session and OTP transports.

- CookieSessionTransport: token travels in a cookie; set() returns "" since
  the cookie header carries the value out of band
- HeaderSessionTransport: token read from a header, returned in the body
- MemorySessionTransport: holds the token in memory (tests)
- ConsoleOtpTransport: logs OTP codes instead of delivering them (development)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Literal, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class SessionCookieOptions:
    """Cookie attributes for the session cookie."""

    cookie_name: str = "session"
    httponly: bool = True
    secure: bool = True
    samesite: Literal["lax", "strict", "none"] = "lax"
    path: str = "/"
    max_age: int = 30 * 24 * 60 * 60

    def attributes(self) -> Dict[str, Any]:
        """Cookie attributes without the name."""
        attrs = asdict(self)
        attrs.pop("cookie_name")
        return attrs


CookieGetter = Callable[[str], Optional[str]]
CookieSetter = Callable[..., None]


class CookieSessionTransport:
    """
    Reads and writes the session token through cookie callables.

    ``set_cookie``/``delete_cookie`` are called as
    ``fn(name, value, **attributes)``, matching Starlette's
    ``Response.set_cookie`` keyword names.
    """

    def __init__(
        self,
        get_cookie: CookieGetter,
        set_cookie: CookieSetter,
        options: Optional[SessionCookieOptions] = None,
    ) -> None:
        self._get_cookie = get_cookie
        self._set_cookie = set_cookie
        self.options = options or SessionCookieOptions()

    def get(self) -> Optional[str]:
        return self._get_cookie(self.options.cookie_name) or None

    def set(self, token: str) -> str:
        self._set_cookie(self.options.cookie_name, token, **self.options.attributes())
        return ""

    def clear(self) -> None:
        expired = replace(self.options, max_age=0)
        self._set_cookie(self.options.cookie_name, "", **expired.attributes())


class HeaderSessionTransport:
    """Token read from a request header; the client stores what set() returns."""

    def __init__(self, get_token: Callable[[], Optional[str]]) -> None:
        self._get_token = get_token

    def get(self) -> Optional[str]:
        return self._get_token() or None

    def set(self, token: str) -> str:
        return token

    def clear(self) -> None:
        # The client owns the token
        pass


class MemorySessionTransport:
    """Keeps the current token in memory."""

    def __init__(self, token: Optional[str] = None) -> None:
        self.token = token

    def get(self) -> Optional[str]:
        return self.token

    def set(self, token: str) -> str:
        self.token = token
        return token

    def clear(self) -> None:
        self.token = None

    def set_token(self, token: Optional[str]) -> None:
        """Simulate an incoming request carrying ``token``."""
        self.token = token


class ConsoleOtpTransport:
    """Writes OTP codes to the log. Never use in production."""

    def __init__(self, ttl: float = 600) -> None:
        self.ttl = ttl

    async def send(self, identifier: str, otp: str) -> None:
        logger.info("OTP issued", identifier=identifier, otp=otp)
