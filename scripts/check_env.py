"""Utility for verifying that the broker's environment configuration is intact.

The tool performs two main checks:

1. It loads ``AppSettings`` from the provided ``.env`` file and checks the
   values that only fail at request time: the storage backend selection and
   the QuickBooks redirect URI, which must point at the callback route.
2. It can record and verify a checksum for the ``.env`` file so unexpected
   edits are detected before the service restarts with them.

Example usages::

    python -m scripts.check_env record --env-file /srv/qbo/.env \
        --hash-file /srv/qbo/.env.sha256

    python -m scripts.check_env verify --env-file /srv/qbo/.env \
        --hash-file /srv/qbo/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from pydantic import ValidationError

from qbo_broker.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

CALLBACK_PATH = "/api/auth/quickbooks/callback"


class ConfigurationError(Exception):
    """Raised when settings load but cannot serve requests."""


def _compute_hash(env_file: Path) -> str:
    """Return the SHA256 checksum for the target environment file."""
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _validate_settings(env_file: Path) -> AppSettings:
    """Load settings from the env file and check cross-field requirements."""
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]

    if settings.store.backend == "dynamodb" and not settings.store.dynamodb_table_name:
        raise ConfigurationError(
            "STORE_BACKEND=dynamodb requires DYNAMODB_TABLE_NAME to be set."
        )
    redirect_path = urlparse(str(settings.intuit.redirect_uri)).path
    if redirect_path.rstrip("/") != CALLBACK_PATH:
        raise ConfigurationError(
            f"QUICKBOOKS_REDIRECT_URI path {redirect_path!r} does not match "
            f"the callback route {CALLBACK_PATH!r}."
        )
    return settings


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    """Persist the current checksum to ``hash_file``."""
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Investigate recent changes before restarting the broker.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate broker settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_argument(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        add_env_argument(subparser)
        subparser.add_argument(
            "--hash-file",
            required=True,
            type=Path,
            help="Location of the checksum baseline.",
        )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate settings without touching any checksum files.",
    )
    add_env_argument(check_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file: Path = args.env_file
    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        _validate_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except ConfigurationError as exc:
        print(f"Settings are inconsistent: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
