"""
L4 Execution — single-file source download.

Fetches one raw file (the driver source) over HTTP(S) and reports
progress as log lines, so it plugs into a pipeline step like any
streamed command.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Callable, Iterator

from ecsetup import __version__
from ecsetup.core.services.ec_setup.errors import SourceAcquisitionFailed

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

Fetcher = Callable[[str, Path], Iterator[str]]
"""``fetcher(url, dest)`` → generator of progress lines."""


def _fmt_size(n: int) -> str:
    if n >= 1024 * 1024:
        return f"{n / (1024 * 1024):.1f} MB"
    if n >= 1024:
        return f"{n / 1024:.1f} KB"
    return f"{n} B"


def fetch_file(url: str, dest: Path, *, timeout: int | None = None) -> Iterator[str]:
    """Download ``url`` to ``dest``.

    Args:
        url: Source URL.
        dest: Destination file (parent must exist).
        timeout: Socket timeout in seconds; None for no timeout.

    Yields:
        Progress lines.

    Raises:
        SourceAcquisitionFailed: On HTTP errors, network errors, an
            empty body, or a failed write.
    """
    yield f"Fetching {url}"

    req = urllib.request.Request(url, headers={"User-Agent": f"ecsetup/{__version__}"})
    kwargs: dict[str, Any] = {}
    if timeout is not None:
        kwargs["timeout"] = timeout

    total = 0
    try:
        with urllib.request.urlopen(req, **kwargs) as resp, open(dest, "wb") as fh:
            for chunk in iter(lambda: resp.read(_CHUNK_SIZE), b""):
                fh.write(chunk)
                total += len(chunk)
    except urllib.error.HTTPError as exc:
        raise SourceAcquisitionFailed(f"HTTP {exc.code} fetching {url}") from exc
    except urllib.error.URLError as exc:
        raise SourceAcquisitionFailed(f"Cannot reach {url}: {exc.reason}") from exc
    except OSError as exc:
        raise SourceAcquisitionFailed(f"Download of {url} failed: {exc}") from exc

    if total == 0:
        raise SourceAcquisitionFailed(f"Empty response from {url}")

    logger.info("Downloaded %s (%s) to %s", url, _fmt_size(total), dest)
    yield f"Saved {_fmt_size(total)} to {dest}"


def make_fetcher(timeout: int | None = None) -> Fetcher:
    """Bind a download timeout into a ``Fetcher``."""
    def _fetch(url: str, dest: Path) -> Iterator[str]:
        return fetch_file(url, dest, timeout=timeout)

    return _fetch
