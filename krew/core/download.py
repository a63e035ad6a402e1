"""Archive pipeline: fetch, verify and extract plugin archives.

The whole archive is read into memory and its sha256 is checked before
anything is written to the destination, so a checksum mismatch never
leaves a partial extraction behind.
"""

from __future__ import annotations

import hashlib
import logging
import ssl
import tarfile
import zipfile
from abc import ABC, abstractmethod
from http.client import HTTPException
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from krew.core.errors import ChecksumMismatchError, ExtractError, FetchError
from krew.utils.filesystem import extract_tar, extract_zip

logger = logging.getLogger(__name__)


class Fetcher(ABC):
    """Retrieves the raw bytes of an archive."""

    @abstractmethod
    def get(self, uri: str) -> bytes:
        """Fetch the archive at uri.

        Raises:
            FetchError: If the archive cannot be retrieved
        """
        ...


class HTTPFetcher(Fetcher):
    """Fetches archives over http(s); file:// URIs are read locally."""

    DEFAULT_TIMEOUT = 60  # seconds

    def __init__(self, timeout: int | None = None, headers: dict[str, str] | None = None):
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._headers = headers or {}
        self._ssl_context = ssl.create_default_context()

    def get(self, uri: str) -> bytes:
        logger.info("Fetching %s", uri)
        try:
            request = Request(uri)
            for key, value in self._headers.items():
                request.add_header(key, value)

            with urlopen(request, timeout=self._timeout, context=self._ssl_context) as response:
                result: bytes = response.read()
                logger.debug("Fetched %d bytes from %s", len(result), uri)
                return result
        except HTTPError as e:
            logger.error("HTTP error %d: %s for %s", e.code, e.reason, uri)
            raise FetchError(f"HTTP {e.code}: {e.reason} for {uri}", uri) from e
        except URLError as e:
            logger.error("Failed to fetch %s: %s", uri, e.reason)
            raise FetchError(f"Failed to fetch {uri}: {e.reason}", uri) from e
        except TimeoutError as e:
            logger.error("Request timed out for %s", uri)
            raise FetchError(f"Request timed out for {uri}", uri) from e
        except ValueError as e:
            raise FetchError(f"Invalid archive URI {uri!r}: {e}", uri) from e
        except (HTTPException, OSError) as e:
            logger.error("Failed to read %s: %s", uri, e)
            raise FetchError(f"Failed to read archive from {uri}: {e!r}", uri) from e


class FileFetcher(Fetcher):
    """Reads a local archive instead of the manifest URI."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self, uri: str) -> bytes:
        logger.info("Reading %s from local file %s", uri, self.path)
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise FetchError(f"Cannot read archive {self.path}: {e}", str(self.path)) from e


class Sha256Verifier:
    """Checks raw archive bytes against an expected hex digest."""

    def __init__(self, expected: str):
        self.expected = expected.lower()

    def verify(self, data: bytes, source: str) -> None:
        """Raise ChecksumMismatchError if data does not hash to the expected digest."""
        actual = hashlib.sha256(data).hexdigest()
        if actual != self.expected:
            raise ChecksumMismatchError(source, self.expected, actual)
        logger.debug("Checksum %s verified for %s", actual, source)


def detect_archive_type(data: bytes) -> str:
    """Identify an archive from its leading bytes.

    Returns:
        One of: "zip", "tar.gz", "tar"

    Raises:
        ValueError: If the content is not a supported archive
    """
    if data.startswith(b"PK\x03\x04") or data.startswith(b"PK\x05\x06"):
        return "zip"
    if data.startswith(b"\x1f\x8b"):
        return "tar.gz"
    if data[257:262] == b"ustar":
        return "tar"
    raise ValueError("unsupported archive type (expected zip, tar.gz or tar)")


def extract_archive(data: bytes, dest_dir: Path, source: str) -> Path:
    """Extract archive bytes into dest_dir.

    Raises:
        ExtractError: If the archive is unsupported, malformed or unsafe
    """
    try:
        kind = detect_archive_type(data)
        logger.debug("Extracting %s archive from %s to %s", kind, source, dest_dir)
        if kind == "zip":
            return extract_zip(data, dest_dir)
        return extract_tar(data, dest_dir, compressed=kind == "tar.gz")
    except (ValueError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ExtractError(f"Failed to extract archive from {source}: {e}", source) from e
    except OSError as e:
        raise ExtractError(f"Failed to write archive contents to {dest_dir}: {e}", source) from e


class Downloader:
    """Runs fetch, verify and extract in that order."""

    def __init__(self, verifier: Sha256Verifier, fetcher: Fetcher):
        self.verifier = verifier
        self.fetcher = fetcher

    def get(self, uri: str, dest_dir: Path) -> Path:
        """Download uri, verify it and extract it into dest_dir.

        Args:
            uri: Archive location
            dest_dir: Existing, empty directory to extract into

        Returns:
            The destination directory

        Raises:
            FetchError, ChecksumMismatchError, ExtractError
        """
        data = self.fetcher.get(uri)
        self.verifier.verify(data, uri)
        return extract_archive(data, dest_dir, uri)


def download_and_extract(
    dest_dir: Path,
    uri: str,
    sha256: str,
    override_file: Path | None = None,
) -> Path:
    """Fetch an archive (or read override_file), verify it and extract it.

    Args:
        dest_dir: Directory to extract into
        uri: Archive location from the manifest
        sha256: Expected hex digest of the archive
        override_file: Local archive used instead of uri; still verified

    Returns:
        The destination directory
    """
    fetcher: Fetcher = HTTPFetcher()
    if override_file is not None:
        fetcher = FileFetcher(override_file)

    return Downloader(Sha256Verifier(sha256), fetcher).get(uri, dest_dir)
