from __future__ import annotations


class BootstrapError(Exception):
    """Base class for everything the bootstrapper raises on purpose."""


class FatalBootstrapError(BootstrapError):
    """A foundational dependency is unavailable; the run cannot continue."""

    exit_code = 1


class EntryPointMissing(FatalBootstrapError):
    """Fetched dotfile state does not contain the required entry point."""

    exit_code = 2


class PackageInstallWarning(BootstrapError):
    """One package failed to install. Recorded, the run continues."""


class DeploymentWarning(BootstrapError):
    """One file/symlink operation failed. Recorded, the run continues."""


class UserDeclinedOverwrite(BootstrapError):
    """The user (or the default answer) declined a destructive prompt."""
