"""
Application factory for the secret vault service.

The asyncpg pool and the aiohttp client session used for authentication are
process-wide resources opened and closed through ``cleanup_ctx``. Either can
be replaced by injecting a ready ``store`` / ``resolver`` (used by tests).
"""
import os
import sys
import logging
from contextlib import AsyncExitStack
from typing import Optional

import aiohttp
import asyncpg
from aiohttp import web

from .exceptions import ConfigurationError
from .handlers import CORS_ORIGIN_KEY, VAULT_KEY, setup_routes, vault_middleware
from .vault import (
    EnvelopeCipher,
    IdentityResolver,
    SecretVault,
    VaultConfig,
    VaultStore,
)

logger = logging.getLogger("navigator.vault")


def create_app(
    config: VaultConfig,
    *,
    store: Optional[VaultStore] = None,
    resolver: Optional[IdentityResolver] = None,
) -> web.Application:
    """Build the vault web application.

    Raises:
        ConfigurationError: If no store is injected and no database DSN
            is configured.
    """
    if store is None and not config.database_dsn:
        raise ConfigurationError(
            "DATABASE_URL environment variable is not set"
        )
    cipher = EnvelopeCipher(config.encryption_key)

    app = web.Application(middlewares=[vault_middleware])
    app[CORS_ORIGIN_KEY] = config.cors_origin

    async def vault_context(app: web.Application):
        async with AsyncExitStack() as stack:
            _resolver = resolver
            if _resolver is None:
                client = aiohttp.ClientSession()
                stack.push_async_callback(client.close)
                _resolver = IdentityResolver(
                    client,
                    config.auth_url,
                    api_key=config.auth_api_key,
                    timeout=config.auth_timeout,
                )
            _store = store
            if _store is None:
                pool = await asyncpg.create_pool(config.database_dsn)
                stack.push_async_callback(pool.close)
                logger.info("Vault database pool opened")
                _store = VaultStore(
                    pool, table_name=config.table_name, timeout=config.db_timeout,
                )
                await _store.ensure_schema()
            app[VAULT_KEY] = SecretVault(_resolver, _store, cipher)
            yield
        logger.info("Vault resources released")

    app.cleanup_ctx.append(vault_context)
    setup_routes(app)
    return app


def main() -> None:
    """Run the vault service using configuration from the environment."""
    logging.basicConfig(
        level=os.environ.get("VAULT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = VaultConfig.from_env()
        app = create_app(config)
    except ConfigurationError as err:
        logger.critical("Vault service cannot start: %s", err)
        sys.exit(1)
    web.run_app(
        app,
        host=os.environ.get("VAULT_HOST", "0.0.0.0"),
        port=int(os.environ.get("VAULT_PORT", "8080")),
    )
