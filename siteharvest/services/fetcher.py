import asyncio
import ipaddress
import socket
from typing import Mapping, Optional
from urllib.parse import urljoin, urlparse

import httpx

from siteharvest.config import HarvestSettings, get_settings

MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}


class FetchError(RuntimeError):
    """A single resource could not be fetched.

    Raised for non-success statuses, timeouts, transport errors, URLs that
    fail validation and bodies larger than the configured limit.
    """

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


async def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address.

    Resolution runs through the event loop's resolver so a slow lookup never
    blocks other fetches and stays inside the caller's timeout.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        raw_ip = info[4][0]
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = raw_ip.split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


async def _validate_url(url: str, block_private: bool = True) -> None:
    """Raise FetchError if *url* fails SSRF / scheme validation."""
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as exc:
        raise FetchError(url, f"Malformed URL: {exc}")

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise FetchError(url, f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not hostname:
        raise FetchError(url, "URL must have a valid hostname.")

    if not block_private:
        return

    try:
        is_private = await _is_private_address(hostname)
    except (UnicodeError, ValueError) as exc:
        # e.g. a label longer than 63 characters fails IDNA encoding
        raise FetchError(url, f"Invalid hostname '{hostname}': {exc}")
    if is_private:
        raise FetchError(url, "Requests to private/internal addresses are not allowed.")


async def _fetch(
    url: str,
    headers: Mapping[str, str],
    timeout: float,
    settings: HarvestSettings,
    transport: Optional[httpx.AsyncBaseTransport],
) -> str:
    block_private = settings.block_private_addresses
    max_size = settings.max_content_size
    await _validate_url(url, block_private)

    current_url = url
    async with httpx.AsyncClient(
        follow_redirects=False, timeout=timeout, headers=dict(headers), transport=transport
    ) as client:
        for _ in range(MAX_REDIRECTS + 1):
            async with client.stream("GET", current_url) as response:
                if response.is_redirect:
                    location = response.headers.get("location", "")
                    next_url = urljoin(current_url, location)
                    await _validate_url(next_url, block_private)
                    current_url = next_url
                    continue

                if not response.is_success:
                    raise FetchError(
                        url,
                        f"HTTP {response.status_code} for {current_url}",
                        status_code=response.status_code,
                    )

                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > max_size:
                    raise FetchError(url, "Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > max_size:
                        raise FetchError(url, "Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                encoding = response.encoding or "utf-8"
                return b"".join(chunks).decode(encoding, errors="replace")

    raise FetchError(url, "Too many redirects.")


async def fetch_url(
    url: str,
    *,
    headers: Mapping[str, str],
    timeout: float,
    settings: Optional[HarvestSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Fetch *url* and return the response body as a string.

    Redirects are followed manually so that every redirect destination is
    validated against the SSRF rules before the next request is made.  The
    whole exchange, redirects and body included, must finish within
    *timeout* seconds.

    Raises:
        FetchError: on validation, network, status, size or timeout failures.
    """
    settings = settings or get_settings()
    try:
        return await asyncio.wait_for(
            _fetch(url, headers, timeout, settings, transport), timeout=timeout
        )
    except asyncio.TimeoutError:
        raise FetchError(url, f"Timed out after {timeout:g}s fetching {url}")
    except httpx.HTTPError as exc:
        raise FetchError(url, f"{type(exc).__name__} fetching {url}: {exc}")
    except (httpx.InvalidURL, UnicodeError) as exc:
        raise FetchError(url, f"Invalid URL {url}: {exc}")
    except LookupError as exc:
        # unknown charset declared by the server
        raise FetchError(url, f"Cannot decode response from {url}: {exc}")
