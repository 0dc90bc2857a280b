"""Verify the gateway's environment before the service starts.

``check`` loads ``AppSettings`` from an env file and prints a summary of the
Magento identity, store backend and TLS policy (secrets masked).

Example usage::

    python -m scripts.check_env check --env-file /srv/magento-gateway/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from magento_gateway.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5


def _mask(value: str) -> str:
    if len(value) <= 2:
        return "*" * len(value)
    return f"{value[0]}{'*' * (len(value) - 2)}{value[-1]}"


def _store_backend(database_url: str) -> str:
    scheme = database_url.split(":", 1)[0]
    if scheme == "memory":
        return "in-memory"
    if database_url.startswith("sqlite:///"):
        return "sqlite"
    return f"sqlalchemy ({scheme})"


def summarize(settings: AppSettings) -> list[str]:
    """Describe the loaded configuration without revealing credentials."""
    magento = settings.magento
    lines = [
        f"environment:      {settings.environment}",
        f"magento base url: {magento.base_url}",
        f"token endpoint:   {magento.token_url}",
        f"identity:         {_mask(magento.username)} (service {magento.service_name})",
        f"token lifetime:   {magento.token_ttl_minutes} minutes",
        f"token store:      {_store_backend(settings.database.database_url)}",
        "token encryption: "
        + ("on" if settings.security.token_encryption_secret else "off"),
        f"tls verification: {'on' if magento.verify_tls else 'OFF'}",
    ]
    return lines


def _load_settings(env_file: Path) -> AppSettings:
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool."
        )
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate gateway settings.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser(
        "check", help="Validate settings and print a masked summary."
    )
    check.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = _load_settings(args.env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    for line in summarize(settings):
        print(line)
    if not settings.magento.verify_tls:
        print(
            "warning: MAGENTO_VERIFY_TLS is disabled; certificates are not checked.",
            file=sys.stderr,
        )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
