"""Inspect or rotate the cached Magento admin token from a shell.

    python -m scripts.magento_token status
    python -m scripts.magento_token refresh
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Callable

from magento_gateway.clients import MagentoClient, build_token_store
from magento_gateway.core.config import get_settings
from magento_gateway.core.errors import IssuanceError, StoreUnavailable
from magento_gateway.core.logging import configure_logging
from magento_gateway.services import CredentialManager, TokenCipherService

EXIT_OK = 0
EXIT_STORE_ERROR = 4
EXIT_ISSUANCE_ERROR = 6


def build_manager() -> CredentialManager:
    settings = get_settings()
    configure_logging(settings.log_level)
    return CredentialManager(
        store=build_token_store(settings.database),
        client=MagentoClient(settings.magento),
        settings=settings.magento,
        token_cipher=TokenCipherService.from_secret(
            settings.security.token_encryption_secret
        ),
    )


async def _run(command: str, manager: CredentialManager) -> int:
    try:
        if command == "refresh":
            await manager.issue_token()
        status = await manager.get_status()
    except IssuanceError as exc:
        print(f"Token issuance failed: {exc}", file=sys.stderr)
        if exc.body:
            print(exc.body, file=sys.stderr)
        return EXIT_ISSUANCE_ERROR
    except StoreUnavailable as exc:
        print(f"Token store unavailable: {exc}", file=sys.stderr)
        return EXIT_STORE_ERROR
    finally:
        await manager.close()

    print(json.dumps(status.model_dump(mode="json", by_alias=True), indent=2))
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    manager_factory: Callable[[], CredentialManager] = build_manager,
) -> int:
    parser = argparse.ArgumentParser(description="Magento token maintenance.")
    parser.add_argument("command", choices=["status", "refresh"])
    args = parser.parse_args(argv)
    return asyncio.run(_run(args.command, manager_factory()))


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
