"""Update decision and run orchestration.

Architecture:
  needs_update  — pure decision: install when absent or strictly older
  UpdateChecker — reads the manifest, fetches metadata, decides, installs
"""

import logging

from elvup.branding import AppBranding
from elvup.config.settings import UpdaterSettings
from elvup.core.errors import ManifestError, VersionParseError
from elvup.core.installer import Installer, require_target
from elvup.core.manifest import manifest_path, read_installed_state
from elvup.core.models import InstalledState, ReleaseMetadata, UpdateResult
from elvup.core.provider import MetadataClient
from elvup.core.version import Ordering, Version, compare

logger = logging.getLogger(__name__)


def needs_update(installed: Version | None, latest: Version) -> bool:
    """True if nothing is installed or the installed version is older.

    Equal or newer installs are left alone (no reinstall, no downgrade).
    """
    if installed is None:
        return True
    return compare(installed, latest) is Ordering.LESS


class UpdateChecker:
    """Runs one check-and-install pass against the configured add-ons root."""

    def __init__(self, settings: UpdaterSettings,
                 client: MetadataClient | None = None,
                 installer: Installer | None = None):
        self.settings = settings
        self.client = client or MetadataClient(settings.metadata_url, settings.timeout)
        self.installer = installer or Installer(
            scratch_parent=settings.scratch_dir,
            keep_scratch=settings.keep_scratch,
            timeout=settings.download_timeout,
        )

    # ── Check ────────────────────────────────────────────────────────

    def check(self) -> tuple[InstalledState, ReleaseMetadata, bool]:
        """Compare the installed version with the latest release."""
        addons_root = self.settings.addons_path
        state = read_installed_state(addons_root)
        installed = None
        if state.is_installed:
            logger.info("Found installed version: %s", state.installed_version)
            try:
                installed = Version.parse(state.installed_version)
            except VersionParseError as e:
                raise ManifestError(manifest_path(addons_root), str(e)) from e
        else:
            logger.info("%s is not installed", AppBranding.ADDON_NAME)

        metadata = self.client.fetch_latest_metadata()
        logger.info("Found latest available version: %s", metadata.latest_version)
        latest = Version.parse(metadata.latest_version)

        logger.debug("Comparing %s to %s", installed, latest)
        update_needed = needs_update(installed, latest)
        logger.debug("After compare, install needed = %s", update_needed)
        return state, metadata, update_needed

    # ── Run ──────────────────────────────────────────────────────────

    def run(self, check_only: bool = False) -> UpdateResult:
        """Check and, unless ``check_only``, install when an update is needed."""
        require_target(self.settings.addons_path)
        state, metadata, update_needed = self.check()

        result = UpdateResult(
            installed_version=state.installed_version,
            latest_version=metadata.latest_version,
            update_needed=update_needed,
            installed=False,
        )
        if not update_needed:
            logger.info("%s is up to date", AppBranding.ADDON_NAME)
            return result
        if check_only:
            logger.info("Update available: %s -> %s",
                        state.installed_version or "(none)", metadata.latest_version)
            return result

        logger.info("Installing %s %s", AppBranding.ADDON_NAME, metadata.latest_version)
        result.directories = tuple(self.installer.install(
            self.settings.addons_path, metadata, progress_callback=_log_progress(),
        ))
        result.installed = True
        return result


def _log_progress(step: int = 25):
    """Build a progress callback that logs every ``step`` percent."""
    last = [-step]

    def report(percent: int):
        if percent - last[0] >= step or (percent == 100 and last[0] != 100):
            last[0] = percent
            logger.debug("Download progress: %d%%", percent)

    return report
