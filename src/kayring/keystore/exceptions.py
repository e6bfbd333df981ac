"""
Keystore Exception Classes
"""

from typing import Optional


class KeystoreException(Exception):
    """Base exception for keystore operations"""
    pass


class AlreadyExists(KeystoreException):
    """Raised when the target entry exists and overwrite was not requested"""

    def __init__(self, name: str):
        super().__init__(
            f"A kaystore {name} already exists. Use --force to overwrite."
        )
        self.name = name


class NotFound(KeystoreException):
    """Raised when the requested entry does not exist"""

    def __init__(self, name: str):
        super().__init__(f"No kaystore found for {name}")
        self.name = name


class InvalidEntryName(KeystoreException):
    """Raised when an entry name would escape the root directory"""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Invalid kaystore name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class InvalidSecretEncoding(KeystoreException):
    """Raised when a secret is not a 0x-prefixed hex string"""
    pass


class UnsupportedFormatVersion(KeystoreException):
    """Raised when the payload version byte is not recognized"""

    def __init__(self, version: int):
        super().__init__(f"Unknown file version: {version}")
        self.version = version


class MalformedPayload(KeystoreException):
    """Raised when a payload is too short to hold the fixed header"""
    pass


class AuthenticationFailure(KeystoreException):
    """Raised when decryption fails.

    Wrong password, wrong round count and a corrupted or tampered file all
    end up here with the same message.
    """

    def __init__(self):
        super().__init__(
            "Failed to decrypt: wrong password, wrong derivation rounds, "
            "or corrupted data"
        )


class DirectoryResolutionFailure(KeystoreException):
    """Raised when no root directory was given and no home directory exists"""

    def __init__(self):
        super().__init__("Could not determine the root directory")


class InvalidConfiguration(KeystoreException):
    """Raised when a setting such as the derivation round count is invalid"""
    pass


class IOFailure(KeystoreException):
    """Raised when a filesystem operation fails; wraps the OSError"""

    def __init__(self, message: str, cause: Optional[OSError] = None):
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.cause = cause
