"""Thin wrapper around the DigitalOcean v2 REST API."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Union

import requests

from dobot.errors import RemoteApiError

_LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.digitalocean.com/v2"


def _api_url() -> str:
    return os.getenv("DIGITALOCEAN_API_URL", DEFAULT_API_URL).rstrip("/")


def _timeout() -> float:
    return float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason or f"HTTP {response.status_code}"


def _request(
    method: str,
    path: str,
    api_token: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Issue one credential-scoped call and return the decoded JSON body."""
    try:
        response = requests.request(
            method,
            f"{_api_url()}{path}",
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            params=params,
            json=payload,
            timeout=_timeout(),
        )
    except requests.RequestException as exc:
        _LOGGER.warning("DigitalOcean %s %s failed: %s", method, path, exc)
        raise RemoteApiError(str(exc)) from exc

    if not response.ok:
        message = _error_message(response)
        _LOGGER.warning("DigitalOcean %s %s returned %s: %s", method, path, response.status_code, message)
        raise RemoteApiError(message, response.status_code)

    if response.status_code == 204 or not response.content:
        return {}
    return response.json()


def validate_token(api_token: str) -> bool:
    """Return True if the provider accepts the token, False if it rejects it."""
    try:
        _request("GET", "/account", api_token)
    except RemoteApiError as exc:
        if exc.status_code in (401, 403):
            return False
        raise
    return True


def list_regions(api_token: str) -> List[Dict[str, Any]]:
    """Return the regions currently accepting new droplets."""
    data = _request("GET", "/regions", api_token, params={"per_page": 200})
    return [region for region in data.get("regions", []) if region.get("available")]


def list_sizes(api_token: str) -> List[Dict[str, Any]]:
    data = _request("GET", "/sizes", api_token, params={"per_page": 200})
    return data.get("sizes", [])


def list_images_page(api_token: str, image_type: str, page: int, per_page: int = 100) -> Dict[str, Any]:
    """Fetch one page of the public image listing (distribution or application)."""
    return _request(
        "GET",
        "/images",
        api_token,
        params={"type": image_type, "page": page, "per_page": per_page},
    )


def list_snapshots(api_token: str) -> List[Dict[str, Any]]:
    """Return the account's private images in a single request."""
    data = _request("GET", "/images", api_token, params={"private": "true", "per_page": 200})
    return data.get("images", [])


def list_droplets(api_token: str) -> List[Dict[str, Any]]:
    data = _request("GET", "/droplets", api_token, params={"per_page": 200})
    return data.get("droplets", [])


def get_droplet(api_token: str, droplet_id: Union[int, str]) -> Dict[str, Any]:
    data = _request("GET", f"/droplets/{droplet_id}", api_token)
    droplet = data.get("droplet")
    if not droplet:
        raise RemoteApiError("Droplet not found or has been deleted.", 404)
    return droplet


def list_ssh_keys(api_token: str) -> List[Dict[str, Any]]:
    data = _request("GET", "/account/keys", api_token, params={"per_page": 200})
    return data.get("ssh_keys", [])


def image_reference(ref: str) -> Union[int, str]:
    """Numeric refs are image ids, everything else is a slug."""
    return int(ref) if str(ref).isdigit() else ref


def create_droplet(
    api_token: str,
    *,
    name: str,
    region: str,
    size: str,
    image: str,
    ssh_keys: List[int],
) -> Dict[str, Any]:
    """Create a droplet and return the provider's droplet record."""
    payload = {
        "name": name,
        "region": region,
        "size": size,
        "image": image_reference(image),
        "ssh_keys": ssh_keys,
        "backups": False,
        "ipv6": False,
        "monitoring": True,
    }
    data = _request("POST", "/droplets", api_token, payload=payload)
    droplet = data.get("droplet")
    if not droplet:
        raise RemoteApiError("Provider did not return the created droplet.")
    return droplet


def delete_droplet(api_token: str, droplet_id: Union[int, str]) -> None:
    _request("DELETE", f"/droplets/{droplet_id}", api_token)


def rebuild_droplet(
    api_token: str,
    droplet_id: Union[int, str],
    image: str,
    ssh_keys: Optional[List[int]] = None,
) -> Dict[str, Any]:
    """Start a rebuild action and return the provider's action record."""
    payload: Dict[str, Any] = {"type": "rebuild", "image": image_reference(image)}
    if ssh_keys:
        payload["ssh_keys"] = ssh_keys
    data = _request("POST", f"/droplets/{droplet_id}/actions", api_token, payload=payload)
    action = data.get("action")
    if not action:
        raise RemoteApiError("Provider did not return the rebuild action.")
    return action
