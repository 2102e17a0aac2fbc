#!/usr/bin/env python3
"""Drop cached image catalogs so the next wizard run refetches them from DigitalOcean."""

import sys

from dotenv import load_dotenv

load_dotenv()

from dobot import database
from dobot.services import catalog_service, store_service


def flush_catalogs(catalog_class=None):
    """Delete the cached catalogs, leaving credentials and sessions alone."""
    removed = catalog_service.invalidate(catalog_class)
    for name in removed:
        print(f"   ✓ Dropped cache:{name}")

    swept = store_service.cleanup_expired()
    print(f"   ✓ Swept {swept} expired records")
    print("\n✅ Catalog cache cleared. It will be rebuilt on next use.")


if __name__ == "__main__":
    if not database.mongo_enabled():
        print("❌ MongoDB is not enabled. Set ENABLE_MONGODB=true in .env")
        print("   The in-memory store is private to the running server; use /refreshcache instead.")
        sys.exit(1)

    target = sys.argv[1] if len(sys.argv) > 1 else None
    print(f"🚀 Flushing {'the ' + target if target else 'all'} catalog cache...")

    confirm = input("\n⚠️  Are you sure? Type 'yes' to continue: ")
    if confirm.lower() == 'yes':
        flush_catalogs(target)
    else:
        print("❌ Flush cancelled.")
