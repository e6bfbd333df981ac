# kayring - Command Line Entry Point
#
# Subcommands: set, get, list, clone
# Every option can also come from a KAYRING_* environment variable (or a
# .env file); flags given on the command line take precedence.

import argparse
import getpass
import sys
from typing import List, Optional

from . import __version__
from .core import (
    EventSeverity,
    EventType,
    Settings,
    configure_audit_logger,
    log_security_event,
)
from .core.config import ENV_LOG_DIR
from .keystore import (
    AlreadyExists,
    InvalidConfiguration,
    KeystoreException,
    SecretStore,
    format_secret,
    parse_secret,
)
from .keystore.encryption import validate_rounds


class PromptError(Exception):
    """Raised when interactive input is missing or inconsistent"""
    pass


def prompt_secret(message: str) -> str:
    """Read a line from the terminal without echoing it."""
    try:
        return getpass.getpass(f"{message.strip()} ")
    except EOFError:
        raise PromptError("No input received") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kayring",
        description="Store private keys in password-encrypted files",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"kayring v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # set
    set_parser = subparsers.add_parser("set", help="Encrypt and store a secret")
    set_parser.add_argument(
        "name",
        help="Name of the key to store. Fails if it already exists unless --force is given"
    )
    set_parser.add_argument(
        "--value",
        help="0x-prefixed hex value to store (env: KAYRING_VALUE). Prompted for "
             "when omitted; required with --silent"
    )
    _add_password_argument(set_parser)
    set_parser.add_argument(
        "-s", "--silent",
        action="store_true",
        help="Do not print progress or prompt for input; --value becomes required"
    )
    set_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite the key if it already exists"
    )
    set_parser.add_argument(
        "--echo",
        action="store_true",
        help="Print the stored value back out"
    )
    _add_dir_argument(set_parser)
    _add_rounds_argument(
        set_parser,
        "Remember this number, it is needed to retrieve the key again!"
    )
    set_parser.set_defaults(func=cmd_set)

    # get
    get_parser = subparsers.add_parser("get", help="Decrypt and print a secret")
    get_parser.add_argument("name", help="Name of the key to retrieve")
    _add_password_argument(get_parser)
    get_parser.add_argument(
        "-s", "--silent",
        action="store_true",
        help="Do not prompt; a missing password is taken to be empty"
    )
    _add_dir_argument(get_parser)
    _add_rounds_argument(
        get_parser,
        "Must match the number used to set the key!"
    )
    get_parser.set_defaults(func=cmd_get)

    # list
    list_parser = subparsers.add_parser("list", help="List stored key names")
    _add_dir_argument(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # clone
    clone_parser = subparsers.add_parser(
        "clone",
        help="Copy an encrypted key under a new name (same password and rounds)"
    )
    clone_parser.add_argument("source", metavar="from", help="Name of the key to clone")
    clone_parser.add_argument("target", metavar="to", help="Name of the cloned key")
    clone_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite the target if it already exists"
    )
    _add_dir_argument(clone_parser)
    clone_parser.set_defaults(func=cmd_clone)

    return parser


def _add_password_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "-p", "--password",
        help="Encryption password (env: KAYRING_PASSWORD)"
    )


def _add_dir_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--dir",
        help="Directory where the keystores are saved (env: KAYRING_DIR, default: ~/.kayring)"
    )


def _add_rounds_argument(parser: argparse.ArgumentParser, note: str):
    parser.add_argument(
        "-d", "--derivation-rounds",
        type=int,
        help=f"Number of rounds to derive the encryption key "
             f"(env: KAYRING_DERIVATION_ROUNDS, default: 100000). {note}"
    )


# ── Commands ─────────────────────────────────────────────────────────


def cmd_set(args: argparse.Namespace, settings: Settings) -> None:
    store = SecretStore(args.dir or settings.root_dir)
    rounds = validate_rounds(_rounds(args, settings))

    if store.exists(args.name) and not args.force:
        raise AlreadyExists(args.name)

    password = args.password if args.password is not None else settings.password
    if password is None:
        if args.silent:
            password = ""
        else:
            password = prompt_secret("Enter password:")
            confirm = prompt_secret("Confirm password:")
            if password != confirm:
                raise PromptError("Passwords do not match")

    value = args.value if args.value is not None else settings.value
    if value is None:
        if args.silent:
            raise PromptError("Value is required in silent mode")
        value = prompt_secret("Enter value:")
    secret = parse_secret(value)

    if not args.silent:
        print("Encrypting...")

    store.set(args.name, secret, password, rounds, overwrite=args.force)

    if args.echo:
        print(value)


def cmd_get(args: argparse.Namespace, settings: Settings) -> None:
    store = SecretStore(args.dir or settings.root_dir)
    rounds = validate_rounds(_rounds(args, settings))

    password = args.password if args.password is not None else settings.password
    if password is None:
        password = "" if args.silent else prompt_secret("Enter password:")

    secret = store.get(args.name, password, rounds)
    print(format_secret(secret))


def cmd_list(args: argparse.Namespace, settings: Settings) -> None:
    store = SecretStore(args.dir or settings.root_dir)
    result = store.list()

    print(", ".join(result.names))

    if not result.complete:
        print("Some entries could not be read.", file=sys.stderr)


def cmd_clone(args: argparse.Namespace, settings: Settings) -> None:
    store = SecretStore(args.dir or settings.root_dir)
    store.clone(args.source, args.target, overwrite=args.force)


def _rounds(args: argparse.Namespace, settings: Settings) -> int:
    # The environment value is only parsed when no flag overrides it
    if args.derivation_rounds is not None:
        return args.derivation_rounds
    return settings.derivation_rounds


def main(argv: Optional[List[str]] = None):
    """
    Main entry point for kayring.

    Any keystore failure is reported as one line on stderr with exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        try:
            configure_audit_logger(
                log_dir=settings.log_dir,
                level=settings.log_level,
            )
        except OSError as e:
            raise InvalidConfiguration(
                f"Could not open audit log directory {settings.log_dir} ({ENV_LOG_DIR}): {e}"
            ) from e
        log_security_event(
            EventType.SYSTEM_START,
            EventSeverity.INFO,
            "kayring starting",
            details={"version": __version__, "command": args.command}
        )

        args.func(args, settings)
    except (KeystoreException, PromptError) as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted by user.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
