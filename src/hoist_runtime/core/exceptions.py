"""Custom exceptions for Hoist Runtime."""

from typing import Optional


class HoistError(Exception):
    """Base exception for all runtime errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(HoistError):
    """Configuration error."""
    pass


class VersionError(HoistError, ValueError):
    """A version could not be derived from the artifact location."""
    pass


class IdentityError(HoistError):
    """A user name could not be resolved to numeric ids."""
    pass


class TransportError(HoistError):
    """The artifact could not be fetched."""
    pass


class ArtifactIntegrityError(TransportError):
    """The fetched artifact does not match its expected digest."""
    pass


class ArchiveFormatError(HoistError):
    """Unreadable gzip/tar stream or unsupported archive content."""
    pass


class InstallError(HoistError):
    """Filesystem failure while unpacking an artifact."""
    pass


class PointerError(HoistError):
    """Failed to flip a current/last pointer."""
    pass


class NotInstalledError(HoistError):
    """Operation requires an installed launchable."""
    pass


class LaunchEntryError(HoistError):
    """bin/launch is missing or unreadable."""
    pass


class HookError(HoistError):
    """A lifecycle script exists but failed."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.output = output
        self.returncode = returncode


class SupervisorError(HoistError):
    """Supervisor command failed."""

    def __init__(self, message: str, output: str = "", code: Optional[str] = None):
        super().__init__(message, code=code)
        self.output = output


class SuperviseOkMissing(SupervisorError):
    """The supervisor has not created supervise/ok for the service yet."""
    pass


class ResourceGroupError(HoistError):
    """Resource group limits could not be applied."""
    pass


class ManifestError(HoistError):
    """App manifest could not be read."""
    pass


class ManifestNotFoundError(ManifestError):
    """No app-manifest.yaml or app-manifest.yml in the install."""
    pass


class LifecycleError(HoistError):
    """A Launch or Halt phase failed; ``code`` names the phase."""
    pass
