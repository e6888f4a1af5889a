"""Update pipeline data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReleaseMetadata:
    """Latest release as reported by the metadata provider."""

    latest_version: str
    download_url: str
    directories: tuple[str, ...]   # Direct children of the add-ons root


@dataclass(frozen=True)
class InstalledState:
    """Locally installed add-on, derived from its manifest."""

    installed_version: str | None = None    # None = not installed

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None


@dataclass
class UpdateResult:
    """Outcome of a single check-and-install run."""

    installed_version: str | None
    latest_version: str
    update_needed: bool
    installed: bool     # True if the installer actually ran to completion
    directories: tuple[str, ...] = ()
