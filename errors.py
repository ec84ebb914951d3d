# Errors raised while exporting recordings


class PVWAError(Exception):
    """Base class for every failure that stops an export run."""


class ConfigError(PVWAError):
    """Missing or invalid base URL, username, password or months."""


class AuthError(PVWAError):
    """The credential exchange failed or did not return a token."""


class TransportError(PVWAError):
    """Network-level failure on any request."""


class ProtocolError(PVWAError):
    """Unexpected status code or malformed response body."""


class StorageError(PVWAError):
    """A local file could not be created or written."""
