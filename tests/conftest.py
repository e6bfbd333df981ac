"""
Shared pytest fixtures for the kayring test suite.

Autouse fixtures below isolate tests from the live user environment:
  - Audit logger      -> temp directory  (no stray log files; opt out with
                         @pytest.mark.real_audit_log to run the default setup)
  - KAYRING_* env     -> cleared         (a developer's own settings never leak in)
  - .env discovery    -> disabled        (a checked-out .env is never picked up)
"""

import pytest

ENV_VARS = (
    "KAYRING_DIR",
    "KAYRING_PASSWORD",
    "KAYRING_VALUE",
    "KAYRING_DERIVATION_ROUNDS",
    "KAYRING_LOG_DIR",
    "KAYRING_LOG_LEVEL",
)

# Low enough to keep PBKDF2 fast in tests
TEST_ROUNDS = 10


@pytest.fixture(autouse=True)
def _isolate_audit_logs(request, tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Tests marked ``real_audit_log`` keep the unpatched constructor, so the
    logger is built exactly as a plain CLI run builds it.
    """
    import kayring.core.audit_log as audit_mod

    # Reset the singleton so the next call to get_audit_logger() creates
    # a fresh instance pointing at the temp directory.
    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    if request.node.get_closest_marker("real_audit_log") is None:
        orig_init = audit_mod.AuditLogger.__init__

        def patched_init(self, log_dir=None, level="WARNING"):
            orig_init(self, log_dir=log_dir or tmp_path / "audit_logs", level=level)

        monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Clear KAYRING_* variables and stop .env files from being loaded."""
    import kayring.core.config as config_mod

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_mod, "load_dotenv", lambda **kwargs: False)


class CountingRandomSource:
    """Deterministic stand-in for os.urandom: 0x00, 0x01, 0x02, ..."""

    def __init__(self, start: int = 0):
        self.counter = start

    def token_bytes(self, n: int) -> bytes:
        out = bytes((self.counter + i) % 256 for i in range(n))
        self.counter += n
        return out


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "keys"


@pytest.fixture
def store(store_dir):
    from kayring.keystore import SecretStore

    return SecretStore(store_dir)


@pytest.fixture
def counting_random():
    return CountingRandomSource()
