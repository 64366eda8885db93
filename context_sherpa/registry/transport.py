"""HTTP transport for the community rule registry."""

from __future__ import annotations

import socket
from typing import Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import RegistryUnavailableError

_USER_AGENT = "context-sherpa"


class DocumentFetcher(Protocol):
    """Anything that can fetch a document by address."""

    def fetch(self, url: str, *, timeout: Optional[float]) -> bytes:
        ...


class UrllibFetcher:
    """Fetches registry documents with a plain GET via urllib."""

    def fetch(self, url: str, *, timeout: Optional[float]) -> bytes:
        request = Request(url, headers={"User-Agent": _USER_AGENT}, method="GET")
        try:
            with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
                status = getattr(response, "status", 200)
                if status != 200:
                    raise RegistryUnavailableError(url, f"HTTP {status}")
                return response.read()
        except HTTPError as exc:
            raise RegistryUnavailableError(url, f"HTTP {exc.code}") from exc
        except URLError as exc:
            raise RegistryUnavailableError(url, str(exc.reason)) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise RegistryUnavailableError(url, "request timed out") from exc
        except OSError as exc:
            raise RegistryUnavailableError(url, str(exc)) from exc


__all__ = ["DocumentFetcher", "UrllibFetcher"]
