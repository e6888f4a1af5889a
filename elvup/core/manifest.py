"""Installed version lookup from the add-on's TOC manifest."""

import logging
import os
import re

from elvup.core.errors import ManifestError
from elvup.core.models import InstalledState

logger = logging.getLogger(__name__)

MANIFEST_RELPATH = os.path.join('ElvUI', 'ElvUI_Mainline.toc')

# Value may carry a locale suffix, e.g. "12.66|enUS"
_VERSION_RE = re.compile(r'Version: (?P<version>[|0-9.]+)')
_NUMERIC_PREFIX_RE = re.compile(r'[0-9.]*')


def manifest_path(addons_root: str) -> str:
    return os.path.join(addons_root, MANIFEST_RELPATH)


def read_installed_version(addons_root: str) -> str | None:
    """Return the installed version string, or None if the add-on is absent.

    A missing manifest means "not installed". Any other OSError propagates;
    a manifest without a usable ``Version:`` line raises ManifestError.
    """
    path = manifest_path(addons_root)
    logger.debug("Using manifest path: %s", path)

    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            content = f.read()
    except FileNotFoundError:
        logger.info("No manifest at %s, treating add-on as not installed", path)
        return None
    except UnicodeDecodeError as e:
        raise ManifestError(path, f"not valid UTF-8 ({e})") from e

    match = _VERSION_RE.search(content)
    if match is None:
        raise ManifestError(path, "no 'Version:' line found")

    raw = match.group('version')
    version = _NUMERIC_PREFIX_RE.match(raw).group(0)
    if not version:
        raise ManifestError(path, f"version value {raw!r} has no numeric part")

    logger.debug("Manifest version field %r -> %s", raw, version)
    return version


def read_installed_state(addons_root: str) -> InstalledState:
    return InstalledState(installed_version=read_installed_version(addons_root))
