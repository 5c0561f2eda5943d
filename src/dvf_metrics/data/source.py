"""Retrieval and decoding of the yearly DVF archives."""

import gzip
import io
from pathlib import Path
from typing import Iterator, Union

import httpx

from ..utils.exceptions import IngestionError
from ..utils.logging import get_logger

logger = get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


async def fetch_year(client: httpx.AsyncClient, url: str, year: int) -> bytes:
    """Download the raw archive of one year.

    Args:
        client: Shared HTTP client
        url: Archive URL of ``year``
        year: Dataset year, for error reporting

    Returns:
        The response body, still compressed when the server sent a gzip file

    Raises:
        IngestionError: On transport errors and non-success status codes
    """
    logger.info("Fetching dataset", year=year, url=url)
    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise IngestionError(
            f"Download of {year} failed with status {e.response.status_code}", year=year
        ) from e
    except httpx.HTTPError as e:
        raise IngestionError(f"Download of {year} failed: {e}", year=year) from e

    logger.info("Dataset fetched", year=year, size_bytes=len(response.content))
    return response.content


def iter_lines(payload: bytes) -> Iterator[str]:
    """Decode ``payload`` lazily into text lines.

    Gzip payloads are decompressed on the fly; anything else is read as
    UTF-8 text.

    Raises:
        IngestionError: If the payload is not valid gzip or UTF-8
    """
    raw: io.BufferedIOBase = io.BytesIO(payload)
    if payload[:2] == GZIP_MAGIC:
        raw = gzip.GzipFile(fileobj=raw)
    yield from _decode(raw, "<payload>")


def iter_file_lines(path: Union[str, Path]) -> Iterator[str]:
    """Read a local export (``.csv`` or ``.csv.gz``) lazily into text lines."""
    path = Path(path)
    with open(path, "rb") as fh:
        raw: io.BufferedIOBase = fh
        if fh.read(2) == GZIP_MAGIC:
            fh.seek(0)
            raw = gzip.GzipFile(fileobj=fh)
        else:
            fh.seek(0)
        yield from _decode(raw, str(path))


def _decode(raw: io.BufferedIOBase, origin: str) -> Iterator[str]:
    try:
        with io.TextIOWrapper(raw, encoding="utf-8", newline="") as text:
            for line in text:
                yield line
    except (OSError, EOFError, UnicodeDecodeError) as e:
        raise IngestionError(f"Cannot decode {origin}: {e}") from e
