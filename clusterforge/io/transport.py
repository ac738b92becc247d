"""Download and extraction of distribution archives.

The core only depends on the ``Transport`` protocol; ``HttpTransport`` is the
default implementation.  Neither retries: a failed download or extraction
surfaces as ``TaskExecutionError`` and the install phase resumes from its
task log on the next run.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

import requests

from clusterforge.errors import TaskExecutionError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


@runtime_checkable
class Transport(Protocol):
    """Moves archives from the network onto disk and unpacks them."""

    def download(self, url: str, dest: Path) -> None:
        """Download *url* to *dest*, creating parent directories."""
        ...

    def extract(self, archive: Path, dest_dir: Path) -> None:
        """Unpack *archive* into *dest_dir*."""
        ...


class HttpTransport:
    """``Transport`` over ``requests``.

    Downloads stream into ``<dest>.part`` and are renamed on completion, so an
    interrupted download never looks like a finished archive.

    Parameters
    ----------
    session:
        Optional ``requests.Session`` to reuse connections.
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session if session is not None else requests.Session()

    def download(self, url: str, dest: Path) -> None:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        logger.info("Downloading %s to %s", url, dest)
        try:
            with self._session.get(url, stream=True) as response:
                response.raise_for_status()
                with open(partial, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
        except requests.RequestException as exc:
            partial.unlink(missing_ok=True)
            raise TaskExecutionError(f"Download of {url} failed: {exc}") from exc
        partial.replace(dest)

    def extract(self, archive: Path, dest_dir: Path) -> None:
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Extracting %s to %s", archive, dest_dir)
        try:
            shutil.unpack_archive(str(archive), str(dest_dir))
        except (shutil.ReadError, ValueError, OSError) as exc:
            raise TaskExecutionError(f"Extraction of {archive} failed: {exc}") from exc
