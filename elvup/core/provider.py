"""Release metadata client — queries the Tukui add-on API.

The endpoint returns a JSON object; only ``version``, ``url`` and
``directories`` are used. Any transport, HTTP or schema problem is a
FetchError; there is no retry.
"""

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from elvup.branding import AppBranding
from elvup.config.settings import DEFAULT_METADATA_URL, TRACE
from elvup.core.errors import FetchError, VersionParseError
from elvup.core.models import ReleaseMetadata
from elvup.core.version import Version

logger = logging.getLogger(__name__)


class MetadataClient:
    """Fetches the latest release metadata. Blocking."""

    def __init__(self, metadata_url: str = DEFAULT_METADATA_URL, timeout: float = 30):
        self.metadata_url = metadata_url
        self.timeout = timeout

    def fetch_latest_metadata(self) -> ReleaseMetadata:
        payload = self._fetch_json()
        metadata = self._parse(payload)
        logger.debug("Latest release %s at %s, directories: %s",
                     metadata.latest_version, metadata.download_url,
                     ', '.join(metadata.directories))
        return metadata

    def _fetch_json(self) -> dict:
        req = Request(self.metadata_url, headers={
            'User-Agent': AppBranding.user_agent(),
            'Accept': 'application/json',
        })

        logger.debug("Requesting %s", self.metadata_url)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except HTTPError as e:
            raise FetchError(self.metadata_url, f"HTTP {e.code} {e.reason}") from e
        except (URLError, OSError) as e:
            raise FetchError(self.metadata_url, str(e)) from e

        logger.log(TRACE, "Metadata response: %r", body[:2000])
        try:
            payload = json.loads(body.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FetchError(self.metadata_url, f"invalid JSON ({e})") from e

        if not isinstance(payload, dict):
            raise FetchError(self.metadata_url, "expected a JSON object")
        return payload

    def _parse(self, payload: dict) -> ReleaseMetadata:
        version = payload.get('version')
        if not isinstance(version, str) or not version:
            raise FetchError(self.metadata_url, "missing or non-string 'version'")
        try:
            Version.parse(version)
        except VersionParseError as e:
            raise FetchError(self.metadata_url, str(e)) from e

        url = payload.get('url')
        if not isinstance(url, str) or not url:
            raise FetchError(self.metadata_url, "missing or non-string 'url'")

        directories = payload.get('directories')
        if not isinstance(directories, list) or not directories:
            raise FetchError(self.metadata_url, "'directories' must be a non-empty list")
        for name in directories:
            if not _is_plain_dirname(name):
                raise FetchError(self.metadata_url, f"invalid directory name {name!r}")
        if len(set(directories)) != len(directories):
            raise FetchError(self.metadata_url, "'directories' contains duplicates")

        return ReleaseMetadata(
            latest_version=version,
            download_url=url,
            directories=tuple(directories),
        )


def _is_plain_dirname(name) -> bool:
    """True for a single path component that stays inside its parent."""
    if not isinstance(name, str) or not name:
        return False
    if name in ('.', '..'):
        return False
    return '/' not in name and '\\' not in name
