"""Custom exceptions for tunnelctl."""


class TunnelCtlError(Exception):
    """Base exception for all tunnelctl errors."""

    pass


class UsageError(TunnelCtlError):
    """Raised when a command receives the wrong number or shape of arguments."""

    pass


class UnrecognizedRouteTypeError(UsageError):
    """Raised when a route command names a route type other than dns or lb."""

    pass


class ValidationError(TunnelCtlError):
    """Raised when a hostname, name, pool or tunnel ID is invalid."""

    pass


class UnknownFormatError(TunnelCtlError):
    """Raised when an output format is not supported."""

    pass


class CredentialsFileExistsError(TunnelCtlError):
    """Raised when a credentials file would overwrite an existing file."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{path} already exists")


class RemoteError(TunnelCtlError):
    """Raised when the control plane fails to carry out a request."""

    pass


class TunnelStoreError(RemoteError):
    """Raised by a control-plane backend when an operation is rejected."""

    pass


class TunnelNotFoundError(RemoteError):
    """Raised when a tunnel reference does not resolve to any tunnel."""

    pass
