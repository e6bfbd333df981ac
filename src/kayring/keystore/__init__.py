# Keystore Module - Password-Encrypted Secret Files
#
# One AES-256-GCM encrypted file per secret
# PBKDF2-SHA256 key derivation from a password and a caller-chosen round count

from .encryption import (
    DEFAULT_DERIVATION_ROUNDS,
    EncryptionService,
    RandomSource,
    SystemRandomSource,
)
from .entry_codec import EncryptedPayload
from .exceptions import (
    AlreadyExists,
    AuthenticationFailure,
    DirectoryResolutionFailure,
    InvalidConfiguration,
    InvalidEntryName,
    InvalidSecretEncoding,
    IOFailure,
    KeystoreException,
    MalformedPayload,
    NotFound,
    UnsupportedFormatVersion,
)
from .secret_value import format_secret, parse_secret
from .store import ListResult, SecretStore, resolve_root_dir

__all__ = [
    "SecretStore",
    "ListResult",
    "resolve_root_dir",
    "EncryptionService",
    "EncryptedPayload",
    "RandomSource",
    "SystemRandomSource",
    "DEFAULT_DERIVATION_ROUNDS",
    "parse_secret",
    "format_secret",
    # Exceptions
    "KeystoreException",
    "AlreadyExists",
    "NotFound",
    "InvalidEntryName",
    "InvalidSecretEncoding",
    "UnsupportedFormatVersion",
    "MalformedPayload",
    "AuthenticationFailure",
    "DirectoryResolutionFailure",
    "InvalidConfiguration",
    "IOFailure",
]
