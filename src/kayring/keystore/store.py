# Keystore - Secret Store
#
# One encrypted file per named secret under a root directory.
# The directory listing is the index: no metadata files, no database.
#
# Security:
# - Each entry encrypted with AES-256-GCM under a PBKDF2-derived key
# - Fresh salt and nonce for every write
# - Derivation rounds are not stored; a mismatch looks like a wrong password
# - Entry names are untrusted and may not leave the root directory
#
# Writes are plain open-truncate-write. A crash mid-write can leave a
# truncated entry; there is no locking between concurrent writers.

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ..core.audit_log import EventSeverity, EventType, get_audit_logger
from . import entry_codec
from .encryption import (
    NONCE_LENGTH,
    SALT_LENGTH,
    EncryptionService,
    RandomSource,
    SystemRandomSource,
    validate_rounds,
)
from .entry_codec import EncryptedPayload
from .exceptions import (
    AlreadyExists,
    AuthenticationFailure,
    DirectoryResolutionFailure,
    InvalidEntryName,
    IOFailure,
    NotFound,
)

DEFAULT_DIR_NAME = ".kayring"

# Owner read/write only
ENTRY_FILE_MODE = 0o600

_FORBIDDEN_NAME_CHARS = {"/", "\\", "\x00"}


def resolve_root_dir(override: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the keystore root directory.

    Args:
        override: Explicit directory; wins when given

    Returns:
        The override, or ``~/.kayring``

    Raises:
        DirectoryResolutionFailure: no override and no home directory
    """
    if override:
        return Path(override)

    try:
        home = Path.home()
    except (KeyError, RuntimeError):
        raise DirectoryResolutionFailure() from None
    if not str(home) or str(home) == "~":
        raise DirectoryResolutionFailure()
    return home / DEFAULT_DIR_NAME


def validate_entry_name(name: str) -> str:
    """
    Reject entry names that are not a single plain filename.

    Raises:
        InvalidEntryName: empty, "." or "..", or contains a path separator or NUL
    """
    if not name:
        raise InvalidEntryName(name, "name must not be empty")
    if name in (".", ".."):
        raise InvalidEntryName(name, "relative path components are not allowed")

    forbidden = set(_FORBIDDEN_NAME_CHARS)
    forbidden.add(os.sep)
    if os.altsep:
        forbidden.add(os.altsep)
    if any(ch in forbidden for ch in name):
        raise InvalidEntryName(name, "path separators are not allowed")
    return name


@dataclass
class ListResult:
    """Entry names plus how many directory entries could not be read."""
    names: List[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def complete(self) -> bool:
        return self.skipped == 0


class SecretStore:
    """
    Directory-scoped store of password-encrypted secrets.

    Usage::

        store = SecretStore("/path/to/keys")
        store.set("deployer", bytes.fromhex("ab12"), "hunter2", rounds=100_000)
        secret = store.get("deployer", "hunter2", rounds=100_000)
        store.clone("deployer", "deployer-backup")
        names = store.list().names

    The store holds no secrets between calls; every operation re-derives
    what it needs.
    """

    def __init__(
        self,
        root_dir: Optional[Union[str, Path]] = None,
        random_source: Optional[RandomSource] = None,
    ):
        """
        Args:
            root_dir: Keystore directory. If None, uses ``~/.kayring``
            random_source: Source of salts and nonces (os.urandom by default)
        """
        self.root_dir = resolve_root_dir(root_dir)
        self.random_source = random_source or SystemRandomSource()
        self.logger = get_audit_logger()

    def entry_path(self, name: str) -> Path:
        """Map an entry name to its file, refusing anything outside the root."""
        validate_entry_name(name)
        path = self.root_dir / name
        if path.parent != self.root_dir:
            raise InvalidEntryName(name, "name must resolve inside the root directory")
        return path

    def exists(self, name: str) -> bool:
        return self.entry_path(name).exists()

    # ── Operations ───────────────────────────────────────────────────

    def set(
        self,
        name: str,
        secret: bytes,
        password: str,
        rounds: int,
        overwrite: bool = False,
    ) -> None:
        """
        Encrypt ``secret`` and write it as entry ``name``.

        Raises:
            AlreadyExists: entry present and overwrite is False
            InvalidConfiguration: rounds out of range
            IOFailure: directory creation or write failed
        """
        path = self.entry_path(name)
        validate_rounds(rounds)

        existed = path.exists()
        if existed and not overwrite:
            raise AlreadyExists(name)

        salt = self.random_source.token_bytes(SALT_LENGTH)
        nonce = self.random_source.token_bytes(NONCE_LENGTH)

        key = EncryptionService.derive_key(password, salt, rounds)
        ciphertext = EncryptionService.encrypt(key, nonce, bytes(secret))
        contents = entry_codec.encode(
            EncryptedPayload(salt=salt, nonce=nonce, ciphertext=ciphertext)
        )

        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._log_error(f"Failed to create directory {self.root_dir}", name)
            raise IOFailure(
                f"Failed to create the directory at {self.root_dir}", e
            ) from e

        try:
            self._write_entry(path, contents)
        except OSError as e:
            self._log_error(f"Could not write entry {name}", name)
            raise IOFailure(f"Could not write to file {path}", e) from e

        event_type = EventType.KEYSTORE_OVERWRITTEN if existed else EventType.KEYSTORE_CREATED
        self.logger.log_keystore_event(
            event_type,
            f"{'Overwrote' if existed else 'Created'} entry {name}",
            details={"name": name, "root_dir": str(self.root_dir)},
        )

    def get(self, name: str, password: str, rounds: int) -> bytes:
        """
        Decrypt and return the secret stored as ``name``.

        Raises:
            NotFound: no such entry
            MalformedPayload: file shorter than the header
            UnsupportedFormatVersion: unknown version byte
            AuthenticationFailure: wrong password, wrong rounds, or corrupted file
            IOFailure: read failed
        """
        path = self.entry_path(name)
        validate_rounds(rounds)

        if not path.exists():
            raise NotFound(name)

        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise NotFound(name) from None
        except OSError as e:
            self._log_error(f"Could not read entry {name}", name)
            raise IOFailure(f"Could not read from file {path}", e) from e

        payload = entry_codec.decode(data)
        key = EncryptionService.derive_key(password, payload.salt, rounds)

        try:
            secret = EncryptionService.decrypt(key, payload.nonce, payload.ciphertext)
        except AuthenticationFailure:
            self.logger.log_keystore_event(
                EventType.KEYSTORE_ACCESS_FAILED,
                f"Failed to decrypt entry {name}",
                details={"name": name},
                severity=EventSeverity.INVESTIGATE,
            )
            raise

        self.logger.log_keystore_event(
            EventType.KEYSTORE_ACCESSED,
            f"Accessed entry {name}",
            details={"name": name},
        )
        return secret

    def list(self) -> ListResult:
        """
        Enumerate entries directly under the root directory.

        Names are sorted by their byte value. Subdirectories are ignored.
        Anything else that is not a readable regular file (dangling symlinks,
        special files, entries that cannot be inspected) is left out and
        counted in ``ListResult.skipped``.

        Raises:
            IOFailure: the root directory itself cannot be read
        """
        result = ListResult()
        try:
            with os.scandir(self.root_dir) as entries:
                for entry in entries:
                    try:
                        if entry.is_file():
                            result.names.append(entry.name)
                        elif not entry.is_dir():
                            # dangling symlink, socket, fifo, ...
                            result.skipped += 1
                    except OSError:
                        result.skipped += 1
        except OSError as e:
            raise IOFailure(f"Could not read from directory {self.root_dir}", e) from e

        result.names.sort(key=os.fsencode)

        self.logger.log_keystore_event(
            EventType.KEYSTORE_LISTED,
            f"Listed {len(result.names)} entries",
            details={"count": len(result.names), "skipped": result.skipped},
            severity=EventSeverity.INFO if result.complete else EventSeverity.INVESTIGATE,
        )
        return result

    def clone(self, source: str, target: str, overwrite: bool = False) -> None:
        """
        Copy the encrypted bytes of ``source`` to ``target``.

        The copy is not re-encrypted: it opens with the source's password
        and round count.

        Raises:
            NotFound: source missing
            AlreadyExists: target present and overwrite is False
            IOFailure: copy failed
        """
        source_path = self.entry_path(source)
        target_path = self.entry_path(target)

        if not source_path.exists():
            raise NotFound(source)
        if target_path.exists() and not overwrite:
            raise AlreadyExists(target)

        try:
            self._write_entry(target_path, source_path.read_bytes())
        except OSError as e:
            self._log_error(f"Could not clone {source} to {target}", target)
            raise IOFailure(
                f"Could not copy from {source_path} to {target_path}", e
            ) from e

        self.logger.log_keystore_event(
            EventType.KEYSTORE_CLONED,
            f"Cloned entry {source} to {target}",
            details={"source": source, "target": target},
        )

    # ── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _write_entry(path: Path, contents: bytes) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, ENTRY_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(contents)
        # O_CREAT's mode only applies to new files
        os.chmod(path, ENTRY_FILE_MODE)

    def _log_error(self, message: str, name: str) -> None:
        self.logger.log_keystore_event(
            EventType.KEYSTORE_ERROR,
            message,
            details={"name": name, "root_dir": str(self.root_dir)},
            severity=EventSeverity.ALERT,
        )
