"""Release installer — download, extract, and swap add-on directories.

Architecture:
  scratch_directory — mkdtemp-backed context, removed on every exit path
  Installer         — download → extract → validate → per-directory swap

The swap is not a whole-tree transaction. Each directory is moved aside,
replaced, and restored if its replacement fails to land; directories that
were already swapped stay updated and the failure is reported as a
PartialInstall listing what completed and what remains.
"""

import logging
import os
import re
import shutil
import stat
import tempfile
import zipfile
import zlib
from contextlib import contextmanager
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from elvup.branding import AppBranding
from elvup.config.settings import TRACE
from elvup.core.errors import (
    ArchiveMismatch, DownloadFailed, ExtractFailed, InstallError,
    PartialInstall, TargetMissing,
)
from elvup.core.models import ReleaseMetadata

logger = logging.getLogger(__name__)

# Buffer size for streaming downloads (80 KB)
DOWNLOAD_BUFFER = 81920

SCRATCH_PREFIX = 'elvup-'
ASIDE_SUFFIX = '.elvup-old'

# Archive tool metadata that never counts as a wrapper folder
_IGNORED_TOP_LEVEL = {'__MACOSX'}

_DRIVE_RE = re.compile(r'^[A-Za-z]:')

# General purpose bit 0 of a zip entry header
_ENCRYPTED_FLAG = 0x1


def require_target(addons_root: str):
    """Raise TargetMissing unless ``addons_root`` is an existing directory."""
    if not os.path.isdir(addons_root):
        raise TargetMissing(addons_root)


@contextmanager
def scratch_directory(parent: str | None = None, keep: bool = False):
    """Yield a fresh, exclusively owned scratch directory.

    The directory is removed when the block exits, however it exits, unless
    ``keep`` is set.
    """
    try:
        path = tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=parent)
    except OSError as e:
        raise InstallError(
            f"Could not create scratch directory under {parent or tempfile.gettempdir()}: {e}"
        ) from e
    logger.debug("Created scratch directory %s", path)

    try:
        yield path
    finally:
        if keep:
            logger.info("Keeping scratch directory for diagnostics: %s", path)
        else:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Removed scratch directory %s", path)


class Installer:
    """Downloads a release archive and installs its directories.

    All methods are synchronous (blocking).
    """

    def __init__(self, scratch_parent: str | None = None, keep_scratch: bool = False,
                 timeout: float = 120):
        self.scratch_parent = scratch_parent
        self.keep_scratch = keep_scratch
        self.timeout = timeout

    def install(self, addons_root: str, metadata: ReleaseMetadata,
                progress_callback=None) -> list[str]:
        """Install ``metadata``'s release into ``addons_root``.

        Returns the directory names that were replaced, in order.
        """
        require_target(addons_root)

        with scratch_directory(self.scratch_parent, self.keep_scratch) as scratch:
            archive_path = self.download(metadata, scratch, progress_callback)
            release_root = self.extract(
                archive_path, os.path.join(scratch, 'extracted'), metadata.directories,
            )
            installed = self.swap_directories(addons_root, release_root, metadata.directories)

        logger.info("Installed %s %s into %s", AppBranding.ADDON_NAME,
                    metadata.latest_version, addons_root)
        return installed

    # ── Download ─────────────────────────────────────────────────────

    def download(self, metadata: ReleaseMetadata, dest_dir: str,
                 progress_callback=None) -> str:
        """Stream the release archive into ``dest_dir``. Returns its path."""
        url = metadata.download_url
        zip_path = os.path.join(
            dest_dir, f"{AppBranding.ADDON_NAME}-{metadata.latest_version}.zip",
        )
        req = Request(url, headers={'User-Agent': AppBranding.user_agent()})

        logger.info("Downloading %s", url)
        total = 0
        downloaded = 0
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                total = _content_length(resp)
                with open(zip_path, 'wb') as f:
                    while True:
                        chunk = resp.read(DOWNLOAD_BUFFER)
                        if not chunk:
                            break
                        f.write(chunk)
                        downloaded += len(chunk)
                        if total > 0 and progress_callback:
                            progress_callback(min(int(downloaded * 100 / total), 100))
        except HTTPError as e:
            raise DownloadFailed(url, f"HTTP {e.code} {e.reason}") from e
        except (URLError, OSError) as e:
            raise DownloadFailed(url, str(e)) from e

        if total > 0 and downloaded < total:
            raise DownloadFailed(url, f"truncated download ({downloaded} of {total} bytes)")

        logger.debug("Downloaded %d bytes to %s", downloaded, zip_path)
        return zip_path

    # ── Extract ──────────────────────────────────────────────────────

    def extract(self, archive_path: str, extract_dir: str, directories) -> str:
        """Extract the archive and return the folder holding ``directories``.

        Raises ExtractFailed for corrupt or unsafe archives and
        ArchiveMismatch when a declared directory is absent.
        """
        logger.info("Extracting %s", os.path.basename(archive_path))
        os.makedirs(extract_dir, exist_ok=True)
        try:
            with zipfile.ZipFile(archive_path, 'r') as zf:
                for info in zf.infolist():
                    _check_member(archive_path, info)
                    logger.log(TRACE, "  %s", info.filename)
                bad_member = zf.testzip()
                if bad_member is not None:
                    raise ExtractFailed(archive_path, f"CRC check failed for {bad_member!r}")
                zf.extractall(extract_dir)
        except zipfile.BadZipFile as e:
            raise ExtractFailed(archive_path, f"invalid ZIP file ({e})") from e
        except (NotImplementedError, RuntimeError) as e:
            # zipfile raises RuntimeError for encrypted members
            raise ExtractFailed(archive_path, f"unsupported entry ({e})") from e
        except (zlib.error, OSError) as e:
            raise ExtractFailed(archive_path, str(e)) from e

        return _locate_release_root(archive_path, extract_dir, directories)

    # ── Swap ─────────────────────────────────────────────────────────

    def swap_directories(self, addons_root: str, source_root: str, directories) -> list[str]:
        """Replace each ``addons_root/name`` with ``source_root/name``, in order."""
        directories = list(directories)
        completed = []
        for index, name in enumerate(directories):
            try:
                _swap_one(addons_root, source_root, name)
            except _RestoreFailed as e:
                remaining = directories[index:]
                logger.error("Failed to install %s: %s", name, e.cause)
                raise PartialInstall(completed, remaining, e.cause,
                                     unrestored={name: e.aside}) from e
            except OSError as e:
                remaining = directories[index:]
                logger.error("Failed to install %s: %s", name, e)
                raise PartialInstall(completed, remaining, e) from e
            completed.append(name)
            logger.info("Installed %s", name)
        return completed


def _content_length(resp) -> int:
    try:
        return int(resp.headers.get('Content-Length') or 0)
    except ValueError:
        return 0


def _check_member(archive_path: str, info: zipfile.ZipInfo):
    """Reject absolute, escaping, symlink, and encrypted entries."""
    name = info.filename.replace('\\', '/')
    if name.startswith('/') or _DRIVE_RE.match(name):
        raise ExtractFailed(archive_path, f"unsupported entry {info.filename!r} (absolute path)")
    if '..' in name.split('/'):
        raise ExtractFailed(archive_path, f"unsupported entry {info.filename!r} (escapes target)")
    if stat.S_ISLNK(info.external_attr >> 16):
        raise ExtractFailed(archive_path, f"unsupported entry {info.filename!r} (symlink)")
    if info.flag_bits & _ENCRYPTED_FLAG:
        raise ExtractFailed(archive_path, f"unsupported entry {info.filename!r} (encrypted)")


def _locate_release_root(archive_path: str, extract_dir: str, directories) -> str:
    """Find the extracted folder that contains every declared directory.

    Handles archives that wrap everything in a single top-level folder.
    """
    missing = [n for n in directories if not os.path.isdir(os.path.join(extract_dir, n))]
    if not missing:
        return extract_dir

    items = [i for i in os.listdir(extract_dir) if i not in _IGNORED_TOP_LEVEL]
    if len(items) == 1 and os.path.isdir(os.path.join(extract_dir, items[0])):
        nested = os.path.join(extract_dir, items[0])
        if all(os.path.isdir(os.path.join(nested, n)) for n in directories):
            logger.debug("Using nested release folder %s", items[0])
            return nested

    raise ArchiveMismatch(archive_path, missing)


def _remove_path(path: str):
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


class _RestoreFailed(Exception):
    """The previous copy was moved aside and could not be moved back."""

    def __init__(self, aside: str, cause: OSError):
        super().__init__(str(cause))
        self.aside = aside
        self.cause = cause


def _swap_one(addons_root: str, source_root: str, name: str):
    """Move ``name`` into place; the previous copy is restored on failure."""
    source = os.path.join(source_root, name)
    destination = os.path.join(addons_root, name)
    aside = os.path.join(addons_root, f".{name}{ASIDE_SUFFIX}")

    # Leftover from an interrupted earlier run
    if os.path.lexists(aside):
        if os.path.lexists(destination):
            logger.warning("Removing stale %s", aside)
            _remove_path(aside)
        else:
            # The only copy of the previous version; put it back first
            logger.warning("Restoring %s from %s", destination, aside)
            os.rename(aside, destination)

    had_previous = os.path.lexists(destination)
    if had_previous:
        logger.debug("Moving %s aside to %s", destination, aside)
        os.rename(destination, aside)

    try:
        shutil.move(source, destination)
    except OSError as e:
        if had_previous:
            try:
                # a cross-device move can leave a partial copy behind
                if os.path.lexists(destination):
                    _remove_path(destination)
                os.rename(aside, destination)
            except OSError as restore_error:
                logger.error("Could not restore %s; previous copy kept at %s: %s",
                             destination, aside, restore_error)
                raise _RestoreFailed(aside, e) from restore_error
            logger.debug("Restored previous %s", destination)
        raise

    if had_previous:
        try:
            _remove_path(aside)
        except OSError as e:
            logger.warning("Could not remove previous copy %s: %s", aside, e)
