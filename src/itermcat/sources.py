"""Readers for image data: local files, URLs and stdin."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO
from urllib.parse import urlparse

import httpx

from itermcat.errors import SourceUnavailable

logger = logging.getLogger(__name__)

URL_SCHEMES = frozenset({"http", "https"})


def is_url(source: str) -> bool:
    """Check if a source argument looks like a remote URL."""
    return urlparse(source).scheme.lower() in URL_SCHEMES


def read_file(path: str | Path) -> bytes:
    """Read a local image file.

    Raises:
        SourceUnavailable: If the file is missing or unreadable
    """
    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except FileNotFoundError as e:
        raise SourceUnavailable(str(path), "No such file or directory") from e
    except IsADirectoryError as e:
        raise SourceUnavailable(str(path), "Is a directory") from e
    except OSError as e:
        raise SourceUnavailable(str(path), e.strerror or str(e)) from e
    logger.debug("Read %d bytes from %s", len(data), file_path)
    return data


def fetch_url(
    url: str,
    timeout: float = 30.0,
    client: httpx.Client | None = None,
) -> bytes:
    """Download an image.

    Args:
        url: http(s) URL of the image
        timeout: Request timeout in seconds
        client: Optional client to reuse (a new one is created otherwise)

    Raises:
        SourceUnavailable: On connection errors or non-2xx responses
    """
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SourceUnavailable(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise SourceUnavailable(url, str(e) or type(e).__name__) from e
    finally:
        if owns_client:
            client.close()
    logger.debug("Fetched %d bytes from %s", len(response.content), url)
    return response.content


def stdin_has_data(stream: IO[str] | None = None) -> bool:
    """Check whether stdin is a pipe or file rather than an interactive terminal."""
    stream = stream if stream is not None else sys.stdin
    if stream is None:
        return False
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        return False


def read_stdin(stream: IO[bytes] | None = None) -> bytes:
    """Read all image bytes from stdin."""
    if stream is None:
        stream = sys.stdin.buffer
    data = stream.read()
    logger.debug("Read %d bytes from stdin", len(data))
    return data
