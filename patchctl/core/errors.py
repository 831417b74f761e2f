"""Domain-specific errors for patchctl."""

from __future__ import annotations


class PatchctlError(Exception):
    """Base error for patchctl."""


class ConfigurationError(PatchctlError):
    """Raised when command input refers to missing files or invalid values."""


class BundleLoadError(ConfigurationError):
    """Raised when a patch bundle file cannot be read."""


class BundleValidationError(PatchctlError):
    """Raised when a patch bundle does not conform to schema or semantics."""


class CompatibilityConfigError(BundleValidationError):
    """Raised when a patch declares the same package more than once."""


class OptionError(PatchctlError):
    """Raised when patch options cannot be parsed or resolved."""


class EngineUnavailableError(PatchctlError):
    """Raised when no patch engine or signer can be found."""


class DeviceSelectionError(PatchctlError):
    """Raised when no single target device can be resolved."""


class DeviceNotFoundError(DeviceSelectionError):
    """Raised when no attached device matches the requested serial."""


class RootRequiredError(PatchctlError):
    """Raised when the device connection lacks superuser capability."""

    def __init__(self, serial: str) -> None:
        super().__init__(f"Root required on {serial}. Deploying failed.")
        self.serial = serial


class TransportError(PatchctlError):
    """Base transport error."""


class TransportUnavailableError(TransportError):
    """Raised when the transport binary cannot be executed."""


class TransportCommandError(TransportError):
    """Raised when the transport itself fails to carry out a request."""


class RemoteExecutionError(PatchctlError):
    """Raised when a deployment step fails on the device."""

    def __init__(
        self,
        step: str,
        serial: str,
        *,
        exit_code: int | None = None,
        cause: str | None = None,
    ) -> None:
        detail = f"exit code {exit_code}" if exit_code is not None else cause or "unknown error"
        super().__init__(f"Deployment step '{step}' failed on {serial}: {detail}")
        self.step = step
        self.serial = serial
        self.exit_code = exit_code


class MonitorError(PatchctlError):
    """Raised when the liveness check of a deployed app fails."""
