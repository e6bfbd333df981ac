# kayring - Main Package
#
# Password-protected local store for private keys and other short secrets.
# Each secret lives in its own AES-256-GCM encrypted file.

__version__ = "0.1.0"
__author__ = "kayring contributors"
__description__ = "Password-protected local secret store"

from .core import (
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .keystore import (
    KeystoreException,
    SecretStore,
)

__all__ = [
    "__version__",
    "SecretStore",
    "KeystoreException",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
