"""Service layer modules for the droplet bot."""

from . import (
    catalog_service,
    confirmation_service,
    credential_service,
    digitalocean_service,
    store_service,
    telegram_service,
    wizard_service,
)

__all__ = [
    "catalog_service",
    "confirmation_service",
    "credential_service",
    "digitalocean_service",
    "store_service",
    "telegram_service",
    "wizard_service",
]
