"""Error taxonomy for the check-and-install pipeline.

Every fatal condition gets its own type so the entry point can tell a clean
failure apart from one that left the add-ons tree half upgraded.
"""


class ElvUpError(Exception):
    """Base class for all errors raised by elvup."""


class ConfigError(ElvUpError):
    """Invalid configuration value (bad verbosity, unusable settings)."""


class VersionParseError(ElvUpError, ValueError):
    """A version string is not dotted-numeric."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"Invalid version {text!r}: {reason}")
        self.text = text


class ManifestError(ElvUpError):
    """The installed manifest exists but its version cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Corrupt manifest {path}: {reason}")
        self.path = path


class FetchError(ElvUpError):
    """Release metadata could not be retrieved or did not match the schema."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch release metadata from {url}: {reason}")
        self.url = url


class InstallError(ElvUpError):
    """Base class for installer failures."""


class TargetMissing(InstallError):
    def __init__(self, path: str):
        super().__init__(f"Add-ons directory does not exist or is not a directory: {path}")
        self.path = path


class DownloadFailed(InstallError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Download of {url} failed: {reason}")
        self.url = url


class ExtractFailed(InstallError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Extraction of {path} failed: {reason}")
        self.path = path


class ArchiveMismatch(ExtractFailed):
    """Declared directories are absent from the extracted archive."""

    def __init__(self, path: str, missing: list[str]):
        super().__init__(path, f"archive lacks declared directories: {', '.join(missing)}")
        self.missing = list(missing)


class PartialInstall(InstallError):
    """Some target directories were replaced, the rest were not.

    ``unrestored`` maps a remaining name to the path its previous copy was
    moved aside to when that copy could not be put back.
    """

    def __init__(self, completed: list[str], remaining: list[str], cause: BaseException,
                 unrestored: dict[str, str] | None = None):
        message = (
            f"Installation stopped at {remaining[0]!r}: {cause}. "
            f"Updated: {', '.join(completed) or '(none)'}; "
            f"unchanged: {', '.join(remaining)}"
        )
        for name, aside in (unrestored or {}).items():
            message += f"; previous {name} could not be restored and is at {aside}"
        super().__init__(message)
        self.completed = list(completed)
        self.remaining = list(remaining)
        self.cause = cause
        self.unrestored = dict(unrestored or {})
