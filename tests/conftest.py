"""Shared pytest fixtures: mongomock store, frozen clock and fake remote APIs."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

import mongomock
import pytest

# Ensure the application package is importable during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dobot import database  # noqa: E402
from dobot.errors import RemoteApiError  # noqa: E402
from dobot.services import digitalocean_service, store_service, telegram_service  # noqa: E402

OPERATOR_ID = 111
CHAT_ID = 111
API_TOKEN = "dop_v1_test"


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """Provide an isolated in-memory MongoDB database for each test."""
    test_db_name = "test_dobot"
    monkeypatch.setenv("ENABLE_MONGODB", "true")
    monkeypatch.setenv("MONGODB_DATABASE", test_db_name)
    monkeypatch.setenv("ALLOWED_USER_IDS", str(OPERATOR_ID))

    client = mongomock.MongoClient()
    db = client[test_db_name]

    monkeypatch.setattr(database, "get_mongo_client", lambda: client)
    monkeypatch.setattr(database, "get_database", lambda: db)

    yield db

    client.drop_database(test_db_name)


class Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> Clock:
    """Freeze the store's notion of time."""
    frozen = Clock(1_700_000_000)
    monkeypatch.setattr(store_service, "now_seconds", lambda: frozen.now)
    return frozen


class TelegramRecorder:
    """Captures outgoing Bot API calls instead of sending them."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append({"method": method, **body})
        return {"ok": True, "result": {}}

    def texts(self) -> List[str]:
        return [call["text"] for call in self.calls if "text" in call]

    @property
    def last(self) -> Dict[str, Any]:
        shown = [call for call in self.calls if "text" in call]
        return shown[-1]

    def buttons(self) -> Dict[str, str]:
        """Map button label -> callback data on the last shown message."""
        markup = self.last.get("reply_markup") or {"inline_keyboard": []}
        return {
            button["text"]: button["callback_data"]
            for row in markup["inline_keyboard"]
            for button in row
        }

    def button(self, label_start: str) -> str:
        for text, data in self.buttons().items():
            if text.startswith(label_start):
                return data
        raise AssertionError(f"No button starting with {label_start!r} in {list(self.buttons())}")


@pytest.fixture
def telegram(monkeypatch: pytest.MonkeyPatch) -> TelegramRecorder:
    recorder = TelegramRecorder()
    monkeypatch.setattr(telegram_service, "_call", recorder)
    return recorder


def make_image(image_id: int, slug: str, name: str, **extra: Any) -> Dict[str, Any]:
    image = {
        "id": image_id,
        "slug": slug,
        "name": name,
        "distribution": extra.pop("distribution", "Ubuntu"),
        "description": extra.pop("description", ""),
        "min_disk_size": extra.pop("min_disk_size", 10),
        "regions": extra.pop("regions", ["nyc1", "fra1"]),
        "status": extra.pop("status", "available"),
    }
    image.update(extra)
    return image


class FakeDigitalOcean:
    """In-process stand-in for the DigitalOcean API functions."""

    def __init__(self) -> None:
        self.regions = [
            {"slug": "nyc1", "name": "New York 1", "available": True},
            {"slug": "fra1", "name": "Frankfurt 1", "available": True},
        ]
        self.sizes = [
            {"slug": "s-2vcpu-2gb", "price_monthly": 18, "memory": 2048, "vcpus": 2,
             "disk": 60, "regions": ["nyc1", "fra1"], "available": True},
            {"slug": "s-1vcpu-1gb", "price_monthly": 6, "memory": 1024, "vcpus": 1,
             "disk": 25, "regions": ["nyc1", "fra1"], "available": True},
        ]
        self.images = {
            "distribution": [
                make_image(1, "ubuntu-22-04-x64", "Ubuntu 22.04 (LTS) x64"),
                make_image(2, "debian-12-x64", "Debian 12 x64", distribution="Debian"),
            ],
            "application": [
                make_image(10, "docker-20-04", "Docker on Ubuntu 20.04"),
                make_image(11, "wordpress-20-04", "WordPress on Ubuntu 20.04"),
            ],
        }
        self.snapshots: List[Dict[str, Any]] = []
        self.ssh_keys = [{"id": 501, "name": "laptop"}]
        self.droplets = {
            "9001": {
                "id": 9001, "name": "web-01", "status": "active", "disk": 20,
                "memory": 1024, "vcpus": 1, "size_slug": "s-1vcpu-1gb",
                "region": {"slug": "fra1", "name": "Frankfurt 1"},
                "networks": {"v4": [{"type": "public", "ip_address": "203.0.113.7"}]},
                "created_at": "2024-01-01T00:00:00Z",
            }
        }
        self.valid_tokens = {API_TOKEN}
        self.page_calls: List[Dict[str, Any]] = []
        self.fail_on_page = None
        self.created: List[Dict[str, Any]] = []
        self.rebuilt: List[Dict[str, Any]] = []
        self.deleted: List[str] = []

    def validate_token(self, api_token):
        return api_token in self.valid_tokens

    def list_regions(self, api_token):
        return [region for region in self.regions if region["available"]]

    def list_sizes(self, api_token):
        return list(self.sizes)

    def list_images_page(self, api_token, image_type, page, per_page=100):
        self.page_calls.append({"type": image_type, "page": page})
        if self.fail_on_page == page:
            raise RemoteApiError("Service unavailable", 503)
        images = self.images[image_type]
        start = (page - 1) * per_page
        batch = images[start:start + per_page]
        links: Dict[str, Any] = {}
        if start + per_page < len(images):
            links = {"pages": {"next": f"/images?page={page + 1}"}}
        return {"images": batch, "meta": {"total": len(images)}, "links": links}

    def list_snapshots(self, api_token):
        return list(self.snapshots)

    def list_droplets(self, api_token):
        return list(self.droplets.values())

    def get_droplet(self, api_token, droplet_id):
        droplet = self.droplets.get(str(droplet_id))
        if droplet is None:
            raise RemoteApiError("Droplet not found or has been deleted.", 404)
        return droplet

    def list_ssh_keys(self, api_token):
        return list(self.ssh_keys)

    def create_droplet(self, api_token, *, name, region, size, image, ssh_keys):
        self.created.append(
            {"name": name, "region": region, "size": size, "image": image, "ssh_keys": ssh_keys}
        )
        return {"id": 9100 + len(self.created), "name": name, "status": "new",
                "region": {"slug": region}, "networks": {"v4": []}}

    def rebuild_droplet(self, api_token, droplet_id, image, ssh_keys=None):
        self.rebuilt.append({"droplet_id": droplet_id, "image": image, "ssh_keys": ssh_keys})
        return {"id": 77, "status": "in-progress"}

    def delete_droplet(self, api_token, droplet_id):
        self.deleted.append(droplet_id)


@pytest.fixture
def digitalocean(monkeypatch: pytest.MonkeyPatch) -> FakeDigitalOcean:
    fake = FakeDigitalOcean()
    for name in (
        "validate_token", "list_regions", "list_sizes", "list_images_page",
        "list_snapshots", "list_droplets", "get_droplet", "list_ssh_keys",
        "create_droplet", "rebuild_droplet", "delete_droplet",
    ):
        monkeypatch.setattr(digitalocean_service, name, getattr(fake, name))
    return fake


@pytest.fixture
def operator(digitalocean):
    """An operator with a stored API token."""
    store_service.put(store_service.CREDENTIAL_NAMESPACE, str(OPERATOR_ID), API_TOKEN)
    return OPERATOR_ID
