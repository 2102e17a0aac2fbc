"""Create, rebuild and delete wizards driven by chat messages and button presses.

Every update is handled on its own: the wizard position lives in the
``session:{operator}:{chat}`` store record and every button carries a
callback token naming the action it triggers. An action is only honoured
when it belongs to the session's current step, so a stale or duplicated
press is reported instead of acted on.

Create: select_region -> select_class -> catalog_menu -> (select_category |
search) -> select_item -> select_size -> name_entry -> confirm -> execute.

Rebuild: droplet details -> select_class -> catalog_menu -> ... ->
select_item -> confirm -> execute. Region and size are the droplet's own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from dobot.errors import (
    EmptyResultError,
    InputValidationError,
    RemoteApiError,
    SessionExpiredError,
)
from dobot.services import (
    catalog_service,
    confirmation_service,
    credential_service,
    digitalocean_service,
    store_service,
    telegram_service,
)
from dobot.utils import callback_codec
from dobot.utils.auth import now_millis
from dobot.utils.categories import category_ids, category_info
from dobot.utils.keyboards import button, in_rows, keyboard, paginate

_LOGGER = logging.getLogger(__name__)

ITEMS_PER_PAGE = 15
NAME_PATTERN = re.compile(r"^[A-Za-z0-9.-]+$")
NAME_CHARSET = "letters, digits, '.' and '-'"

CLASS_LABELS = {
    "image": "💿 OS Distribution",
    "app": "🚀 Marketplace 1-Click App",
    "snapshot": "📸 My Snapshots",
}

# Action tag -> session steps in which the action is accepted.
ACTION_STEPS = {
    "rg": {"select_region"},
    "cl": {"select_class"},
    "mm": {"catalog_menu"},
    "ct": {"select_category"},
    "pg": {"select_item"},
    "it": {"select_item"},
    "sz": {"select_size"},
    "dn": {"name_entry"},
    "bk": {
        "select_class", "catalog_menu", "select_category", "search",
        "select_item", "select_size", "name_entry",
    },
    "cx": None,
}

NO_TEXT_EXPECTED = (
    "🤔 Nothing is waiting for a reply right now.\n\n"
    "Use /create, /droplets or /setapi."
)


@dataclass
class Conversation:
    """Who is talking, where, and which bot message carried the pressed button."""

    operator_id: int
    chat_id: int
    message_id: Optional[int] = None


# === SESSION HELPERS ===

def _session_key(conv: Conversation) -> str:
    return f"{conv.operator_id}:{conv.chat_id}"


def load_session(conv: Conversation) -> Tuple[Optional[Dict[str, Any]], int]:
    return store_service.get_versioned(store_service.SESSION_NAMESPACE, _session_key(conv))


def save_session(conv: Conversation, session: Dict[str, Any], version: Optional[int]) -> int:
    """Write the session, failing if another update advanced it since it was loaded."""
    return store_service.put(
        store_service.SESSION_NAMESPACE,
        _session_key(conv),
        session,
        ttl=store_service.SESSION_TTL_SECONDS,
        expected_version=version,
    )


def end_session(conv: Conversation) -> None:
    store_service.delete(store_service.SESSION_NAMESPACE, _session_key(conv))


# === OUTPUT HELPERS ===

def _button(conv: Conversation, text: str, step: str, *params: object) -> Dict[str, str]:
    return button(text, callback_codec.encode(step, params, conv.operator_id))


def _show(conv: Conversation, text: str, markup: Optional[Dict[str, Any]] = None) -> None:
    """Replace the pressed message when there is one, otherwise send a new message."""
    if conv.message_id:
        telegram_service.edit_message(conv.chat_id, conv.message_id, text, markup)
    else:
        telegram_service.send_message(conv.chat_id, text, markup)


def report(conv: Conversation, text: str) -> None:
    """Send a standalone notice, leaving the previous keyboard usable."""
    telegram_service.send_message(conv.chat_id, text)


def _nav_row(conv: Conversation, back: bool = True) -> List[Dict[str, str]]:
    row = []
    if back:
        row.append(_button(conv, "◀️ Back", "bk"))
    row.append(_button(conv, "❌ Cancel", "cx"))
    return row


# === VALIDATION ===

def validate_name(name: str) -> str:
    """Return the stripped name or raise InputValidationError."""
    candidate = (name or "").strip()
    if not candidate or not NAME_PATTERN.match(candidate):
        raise InputValidationError(
            f"❌ Invalid name: {candidate or '(empty)'}\n\n"
            f"Names may only contain {NAME_CHARSET}. Send another name."
        )
    return candidate


def generate_droplet_name(image: str, size: str, region: str) -> str:
    """Default name like ``ubuntu-s-1vcpu-1gb-nyc1-4821``."""
    prefix = image.split("-")[0]
    raw = f"{prefix}-{size}-{region}-{str(now_millis())[-4:]}"
    return re.sub(r"[^A-Za-z0-9.-]", "-", raw)


# === CATALOG VIEWS ===

def _eligible_items(session: Dict[str, Any], api_token: str) -> List[Dict[str, Any]]:
    items = catalog_service.list_by_class(session["catalog_class"], api_token)
    if session["kind"] == "rebuild":
        return catalog_service.filter_for_rebuild_compatibility(
            items, int(session["disk"]), session["region"]
        )
    return catalog_service.filter_by_region(items, session["region"])


def _listing_items(session: Dict[str, Any], api_token: str) -> List[Dict[str, Any]]:
    items = _eligible_items(session, api_token)
    listing = session.get("listing") or {}
    mode = listing.get("mode", "all")
    if mode == "popular":
        return catalog_service.popular(items, session["catalog_class"])
    if mode == "category":
        return catalog_service.group_by_category(items).get(listing.get("category"), [])
    if mode == "search":
        return catalog_service.search(items, listing.get("term", ""))
    return items


def _back_step(session: Dict[str, Any]) -> Optional[str]:
    """Step reached by Back; None means leave the wizard (rebuild -> droplet)."""
    step = session["step"]
    if step == "select_class":
        return "select_region" if session["kind"] == "create" else None
    if step in ("select_category", "search"):
        return "catalog_menu"
    if step == "select_item":
        mode = (session.get("listing") or {}).get("mode")
        if mode == "category":
            return "select_category"
        if session.get("catalog_class") == "snapshot":
            return "select_class"
        return "catalog_menu"
    if step == "select_size":
        return "select_item"
    if step == "name_entry":
        return "select_size"
    return "select_class"


# === STEP RENDERING ===

def render_step(conv: Conversation, session: Dict[str, Any], api_token: str) -> Tuple[str, Dict[str, Any]]:
    """
    Build the prompt for the session's current step.

    Remote lookups happen here, before the session is written, so an empty
    listing raises EmptyResultError and the wizard stays where it was.
    """
    step = session["step"]
    subject = "droplet" if session["kind"] == "create" else f"rebuild of {session.get('droplet_name')}"

    if step == "select_region":
        regions = digitalocean_service.list_regions(api_token)
        if not regions:
            raise EmptyResultError("❌ No regions are available right now.")
        buttons = [_button(conv, region["name"], "rg", region["slug"]) for region in regions]
        rows = in_rows(buttons, 2) + [_nav_row(conv, back=False)]
        return "🌍 Select a region for your new droplet:", keyboard(rows)

    if step == "select_class":
        rows = [[_button(conv, label, "cl", name)] for name, label in CLASS_LABELS.items()]
        rows.append(_nav_row(conv))
        return f"💾 Choose the image type for your {subject}:", keyboard(rows)

    if step == "catalog_menu":
        rows = [
            [_button(conv, "📂 Browse", "mm", "browse")],
            [_button(conv, "🔍 Search by Name", "mm", "search")],
            [_button(conv, "⭐ Popular", "mm", "popular")],
            _nav_row(conv),
        ]
        label = CLASS_LABELS[session["catalog_class"]]
        return f"{label}\n\nHow would you like to find your image?", keyboard(rows)

    if step == "select_category":
        grouped = catalog_service.group_by_category(_eligible_items(session, api_token))
        rows = []
        for category_id in category_ids():
            count = len(grouped.get(category_id, []))
            if count:
                info = category_info(category_id)
                rows.append([_button(conv, f"{info['icon']} {info['name']} ({count})", "ct", category_id)])
        if not rows:
            raise EmptyResultError("❌ No apps are available for this selection.")
        rows.append(_nav_row(conv))
        return "📂 Browse by Category\n\nSelect a category:", keyboard(rows)

    if step == "search":
        text = (
            "🔍 Search\n\n"
            f"Send the name or a keyword (at least {catalog_service.MIN_SEARCH_LENGTH} characters).\n\n"
            "Examples: WordPress, Docker, database"
        )
        return text, keyboard([_nav_row(conv)])

    if step == "select_item":
        items = _listing_items(session, api_token)
        if not items:
            raise EmptyResultError("❌ No images found. Try another category or search term.")
        listing = session.setdefault("listing", {"mode": "all"})
        page_items, current, total_pages = paginate(items, int(listing.get("page", 1)), ITEMS_PER_PAGE)
        listing["page"] = current

        rows = [
            [_button(conv, f"{item['name']} ({item['min_disk_size']}GB)", "it", item["ref"])]
            for item in page_items
        ]
        nav = []
        if current > 1:
            nav.append(_button(conv, "◀️ Previous", "pg", current - 1))
        if current < total_pages:
            nav.append(_button(conv, "Next ▶️", "pg", current + 1))
        if nav:
            rows.append(nav)
        rows.append(_nav_row(conv))

        text = f"🖥️ Select an image (Page {current}/{total_pages})\n\nTotal: {len(items)}"
        if session["kind"] == "rebuild":
            text += "\n\n⚠️ Warning: All data on this droplet will be erased!"
        return text, keyboard(rows)

    if step == "select_size":
        sizes = catalog_service.filter_sizes(
            digitalocean_service.list_sizes(api_token),
            session["region"],
            int(session.get("min_disk", 0)),
        )
        if not sizes:
            raise EmptyResultError("❌ No sizes in this region can run the selected image.")
        rows = [
            [_button(
                conv,
                f"{size['slug']} - ${size.get('price_monthly')}/mo "
                f"({size.get('memory')}MB RAM, {size.get('vcpus')} vCPU)",
                "sz",
                size["slug"],
            )]
            for size in sizes
        ]
        rows.append(_nav_row(conv))
        return "💾 Select a size for your droplet:", keyboard(rows)

    if step == "name_entry":
        text = (
            "📝 Droplet Name\n\n"
            f"Region: {session['region']}\n"
            f"Size: {session['size']}\n"
            f"Image: {session['image_name']}\n\n"
            f"Default name: {session['default_name']}\n\n"
            f"Send a message to use another name ({NAME_CHARSET}), "
            "or use the button below to keep the default."
        )
        rows = [[_button(conv, "✅ Use Default Name", "dn")], _nav_row(conv)]
        return text, keyboard(rows)

    raise SessionExpiredError()


def advance(
    conv: Conversation,
    session: Dict[str, Any],
    version: Optional[int],
    api_token: str,
) -> None:
    """Render the session's step, persist the session, then show the prompt."""
    text, markup = render_step(conv, session, api_token)
    save_session(conv, session, version)
    _show(conv, text, markup)


# === ENTRY POINTS ===

def start_create(conv: Conversation) -> None:
    api_token = credential_service.require_credential(conv.operator_id)
    session = {"kind": "create", "step": "select_region"}
    advance(conv, session, None, api_token)


def start_rebuild(conv: Conversation, droplet_id: str) -> None:
    api_token = credential_service.require_credential(conv.operator_id)
    droplet = digitalocean_service.get_droplet(api_token, droplet_id)
    session = {
        "kind": "rebuild",
        "step": "select_class",
        "droplet_id": str(droplet["id"]),
        "droplet_name": droplet.get("name"),
        "disk": int(droplet.get("disk") or 0),
        "region": (droplet.get("region") or {}).get("slug"),
    }
    advance(conv, session, None, api_token)


def start_credential_entry(conv: Conversation) -> None:
    has_existing = credential_service.get_credential(conv.operator_id) is not None
    save_session(conv, {"kind": "credential", "step": "token_entry"}, None)
    warning = (
        "⚠️ Changing your API token clears all active wizards and pending confirmations.\n\n"
        if has_existing
        else ""
    )
    telegram_service.send_message(
        conv.chat_id,
        "🔑 DigitalOcean API Token\n\n"
        f"{warning}"
        "Send your DigitalOcean API token as the next message.\n\n"
        "How to get it:\n"
        "1. Open the DigitalOcean control panel\n"
        "2. API -> Tokens\n"
        "3. Generate a token with Read & Write scope\n\n"
        "🔒 Your message is deleted right after it is read.",
    )


def cancel(conv: Conversation) -> None:
    end_session(conv)
    _show(conv, "❌ Cancelled.")


def handle_text(conv: Conversation, text: str, user_message_id: Optional[int] = None) -> None:
    """Continue the wizard with free text; only name, search and token entry take it."""
    session, version = load_session(conv)
    if not session:
        raise SessionExpiredError(NO_TEXT_EXPECTED)

    step = session["step"]
    if step == "token_entry":
        if user_message_id:
            telegram_service.delete_message(conv.chat_id, user_message_id)
        telegram_service.send_message(conv.chat_id, "⏳ Validating your API token...")
        credential_service.save_credential(conv.operator_id, text)
        end_session(conv)
        telegram_service.send_message(
            conv.chat_id,
            "✅ API token saved successfully!\n\nYou can now use /droplets and /create.",
        )
        return

    api_token = credential_service.require_credential(conv.operator_id)

    if step == "search":
        results = catalog_service.search(_eligible_items(session, api_token), text)
        if not results:
            raise EmptyResultError("❌ Nothing found. Try different keywords.")
        session["step"] = "select_item"
        session["listing"] = {"mode": "search", "term": text.strip(), "page": 1}
        advance(conv, session, version, api_token)
        return

    if step == "name_entry":
        name = validate_name(text)
        _propose_create(conv, session, version, name, api_token)
        return

    raise SessionExpiredError(NO_TEXT_EXPECTED)


def handle_callback(conv: Conversation, data: str) -> None:
    """Decode a pressed button and run the action it names."""
    action, params = callback_codec.decode(data, conv.operator_id)

    if action in ("cf", "cb", "ca"):
        _handle_confirmation(conv, action, params[0] if params else "")
        return
    if action == "ls":
        show_droplets(conv)
        return
    if action == "dr":
        show_droplet_details(conv, params[0])
        return
    if action == "rb":
        start_rebuild(conv, params[0])
        return
    if action == "dl":
        _propose_delete(conv, params[0])
        return

    if action not in ACTION_STEPS:
        raise SessionExpiredError()

    session, version = load_session(conv)
    if not session or session.get("kind") not in ("create", "rebuild"):
        raise SessionExpiredError()
    allowed = ACTION_STEPS[action]
    if allowed is not None and session["step"] not in allowed:
        raise SessionExpiredError()

    if action == "cx":
        cancel(conv)
        return

    api_token = credential_service.require_credential(conv.operator_id)

    if action == "bk":
        target = _back_step(session)
        if target is None:
            end_session(conv)
            show_droplet_details(conv, session["droplet_id"])
            return
        session["step"] = target
    elif action == "rg":
        region = params[0]
        if region not in {r["slug"] for r in digitalocean_service.list_regions(api_token)}:
            raise InputValidationError(f"❌ Region {region} is not available.")
        session.update(step="select_class", region=region)
    elif action == "cl":
        catalog_class = params[0]
        if catalog_class not in catalog_service.CATALOG_CLASSES:
            raise InputValidationError(f"❌ Unknown image type: {catalog_class}")
        session["catalog_class"] = catalog_class
        if catalog_class == "snapshot":
            session.update(step="select_item", listing={"mode": "all", "page": 1})
        else:
            session["step"] = "catalog_menu"
    elif action == "mm":
        mode = params[0]
        if mode == "search":
            session["step"] = "search"
        elif mode == "browse" and session["catalog_class"] == "app":
            session["step"] = "select_category"
        elif mode in ("browse", "popular"):
            session.update(
                step="select_item",
                listing={"mode": "popular" if mode == "popular" else "all", "page": 1},
            )
        else:
            raise InputValidationError(f"❌ Unknown option: {mode}")
    elif action == "ct":
        session.update(step="select_item", listing={"mode": "category", "category": params[0], "page": 1})
    elif action == "pg":
        session.setdefault("listing", {"mode": "all"})["page"] = int(params[0])
    elif action == "it":
        _select_item(conv, session, version, params[0], api_token)
        return
    elif action == "sz":
        _select_size(session, params[0], api_token)
    elif action == "dn":
        _propose_create(conv, session, version, session["default_name"], api_token)
        return

    advance(conv, session, version, api_token)


# === TRANSITIONS ===

def _select_item(
    conv: Conversation,
    session: Dict[str, Any],
    version: int,
    ref: str,
    api_token: str,
) -> None:
    item = catalog_service.find_item(_eligible_items(session, api_token), ref)
    if item is None:
        raise InputValidationError("❌ That image is not available for this selection.")

    if session["kind"] == "create":
        session.update(
            step="select_size",
            image=item["ref"],
            image_name=item["name"],
            min_disk=item["min_disk_size"],
        )
        advance(conv, session, version, api_token)
        return

    session.update(image=item["ref"], image_name=item["name"])
    ssh_keys = _require_ssh_keys(api_token)
    params = {
        "droplet_id": session["droplet_id"],
        "droplet_name": session.get("droplet_name"),
        "image": item["ref"],
        "image_name": item["name"],
        "ssh_keys": [key["id"] for key in ssh_keys],
    }
    key = _hand_off(conv, session, version, "rebuild", params)
    text = (
        "⚠️ Confirm Rebuild\n\n"
        f"Droplet: {params['droplet_name']} ({params['droplet_id']})\n"
        f"New image: {item['name']}\n\n"
        "WARNING:\n"
        "• All data will be permanently deleted\n"
        "• The droplet will be offline during rebuild\n"
        "• IP address will remain the same\n\n"
        "This action cannot be undone!"
    )
    _show_confirmation(conv, key, text, "✅ Yes, Rebuild Now")


def _select_size(session: Dict[str, Any], slug: str, api_token: str) -> None:
    sizes = catalog_service.filter_sizes(
        digitalocean_service.list_sizes(api_token),
        session["region"],
        int(session.get("min_disk", 0)),
    )
    if slug not in {size["slug"] for size in sizes}:
        raise InputValidationError(f"❌ Size {slug} cannot run the selected image here.")
    session.update(
        step="name_entry",
        size=slug,
        default_name=generate_droplet_name(session["image"], slug, session["region"]),
    )


def _require_ssh_keys(api_token: str) -> List[Dict[str, Any]]:
    ssh_keys = digitalocean_service.list_ssh_keys(api_token)
    if not ssh_keys:
        raise EmptyResultError(
            "❌ No SSH Keys Found\n\n"
            "Add at least one SSH key to your DigitalOcean account "
            "(Settings -> Security -> SSH Keys), then try again."
        )
    return ssh_keys


def _hand_off(
    conv: Conversation,
    session: Dict[str, Any],
    version: int,
    operation: str,
    params: Dict[str, Any],
) -> str:
    """Claim the session, turn it into a pending mutation, and end it."""
    resume = dict(session)
    session["step"] = "confirm"
    save_session(conv, session, version)
    params["wizard"] = resume
    key = confirmation_service.propose(operation, params, conv.operator_id)
    end_session(conv)
    return key


def _show_confirmation(conv: Conversation, key: str, text: str, yes_label: str, back: bool = True) -> None:
    rows = [[_button(conv, yes_label, "cf", key)]]
    last = [_button(conv, "❌ Cancel", "ca", key)]
    if back:
        last.insert(0, _button(conv, "◀️ Back", "cb", key))
    rows.append(last)
    _show(conv, text, keyboard(rows))


def _propose_create(
    conv: Conversation,
    session: Dict[str, Any],
    version: int,
    name: str,
    api_token: str,
) -> None:
    name = validate_name(name)
    ssh_keys = _require_ssh_keys(api_token)
    params = {
        "name": name,
        "region": session["region"],
        "size": session["size"],
        "image": session["image"],
        "image_name": session["image_name"],
        "ssh_keys": [key["id"] for key in ssh_keys],
    }
    key = _hand_off(conv, session, version, "create", params)
    key_names = "\n".join(f"• {key.get('name')}" for key in ssh_keys)
    text = (
        "⚠️ Confirm Droplet Creation\n\n"
        f"Name: {name}\n"
        f"Region: {params['region']}\n"
        f"Size: {params['size']}\n"
        f"Image: {params['image_name']}\n\n"
        f"SSH Keys ({len(ssh_keys)}):\n{key_names}\n\n"
        "Are you sure you want to create this droplet?"
    )
    _show_confirmation(conv, key, text, "✅ Yes, Create")


def _propose_delete(conv: Conversation, droplet_id: str) -> None:
    api_token = credential_service.require_credential(conv.operator_id)
    droplet = digitalocean_service.get_droplet(api_token, droplet_id)
    params = {"droplet_id": str(droplet["id"]), "droplet_name": droplet.get("name")}
    key = confirmation_service.propose("delete", params, conv.operator_id)
    text = (
        f"⚠️ Are you sure you want to delete {params['droplet_name']}?\n\n"
        "This action cannot be undone!"
    )
    _show_confirmation(conv, key, text, "✅ Yes, Delete", back=False)


# === CONFIRMATION & EXECUTION ===

def _handle_confirmation(conv: Conversation, action: str, key: str) -> None:
    record = confirmation_service.consume(key, conv.operator_id)
    if record is None:
        raise SessionExpiredError(
            "⌛ This confirmation has expired or was already used.\n\n"
            "Please start again with /create or /droplets."
        )

    params = record["params"]
    if action == "ca":
        _show(conv, "❌ Cancelled.")
        return

    if action == "cb":
        resume = params.get("wizard")
        if not resume:
            show_droplet_details(conv, params["droplet_id"])
            return
        api_token = credential_service.require_credential(conv.operator_id)
        resume["step"] = "name_entry" if resume["kind"] == "create" else "select_item"
        # A wizard started since the hand-off wins over the restored one.
        advance(conv, resume, 0, api_token)
        return

    execute(conv, record["operation"], params)


def execute(conv: Conversation, operation: str, params: Dict[str, Any]) -> None:
    """Issue the remote mutation once. Failures are reported, never retried."""
    api_token = credential_service.require_credential(conv.operator_id)
    _show(conv, "⏳ Working on it... Please wait.")

    try:
        if operation == "create":
            droplet = digitalocean_service.create_droplet(
                api_token,
                name=params["name"],
                region=params["region"],
                size=params["size"],
                image=params["image"],
                ssh_keys=params["ssh_keys"],
            )
            text = (
                "✅ Droplet Created Successfully!\n\n"
                f"Name: {droplet.get('name')}\n"
                f"ID: {droplet.get('id')}\n"
                f"Status: {droplet.get('status')}\n"
                f"Region: {(droplet.get('region') or {}).get('slug', params['region'])}\n"
                f"IP: {_public_ipv4(droplet) or 'Assigning...'}\n\n"
                "Use /droplets to check the status."
            )
        elif operation == "rebuild":
            action = digitalocean_service.rebuild_droplet(
                api_token, params["droplet_id"], params["image"], params.get("ssh_keys")
            )
            text = (
                "✅ Rebuild Started Successfully!\n\n"
                f"Droplet: {params.get('droplet_name')} ({params['droplet_id']})\n"
                f"New image: {params.get('image_name')}\n"
                f"Action ID: {action.get('id')}\n"
                f"Status: {action.get('status')}\n\n"
                "It may take several minutes to complete. Use /droplets to check the status."
            )
        else:
            digitalocean_service.delete_droplet(api_token, params["droplet_id"])
            text = f"✅ Droplet {params.get('droplet_name')} deleted successfully!"
    except RemoteApiError as exc:
        _LOGGER.warning("%s for operator %s failed: %s", operation, conv.operator_id, exc.provider_message)
        _show(
            conv,
            f"❌ Failed to {operation} droplet: {exc.provider_message}\n\n"
            "The confirmation has been used up. Please start again.",
        )
        return

    _LOGGER.info("%s completed for operator %s", operation, conv.operator_id)
    _show(conv, text)


# === DROPLET VIEWS ===

def _public_ipv4(droplet: Dict[str, Any]) -> Optional[str]:
    for network in (droplet.get("networks") or {}).get("v4", []):
        if network.get("type") == "public":
            return network.get("ip_address")
    return None


def show_droplets(conv: Conversation) -> None:
    api_token = credential_service.require_credential(conv.operator_id)
    droplets = digitalocean_service.list_droplets(api_token)
    if not droplets:
        raise EmptyResultError("No droplets found. Use /create to make one.")
    rows = [
        [_button(conv, f"{droplet['name']} ({droplet.get('status')})", "dr", droplet["id"])]
        for droplet in droplets
    ]
    _show(conv, "Your Droplets:", keyboard(rows))


def show_droplet_details(conv: Conversation, droplet_id: str) -> None:
    api_token = credential_service.require_credential(conv.operator_id)
    droplet = digitalocean_service.get_droplet(api_token, droplet_id)
    ip = _public_ipv4(droplet) or "Not assigned yet"
    text = (
        "📦 Droplet Details\n\n"
        f"Name: {droplet.get('name')}\n"
        f"Status: {droplet.get('status')}\n"
        f"Region: {(droplet.get('region') or {}).get('name')}\n"
        f"Size: {droplet.get('size_slug')}\n"
        f"Memory: {droplet.get('memory')} MB\n"
        f"vCPUs: {droplet.get('vcpus')}\n"
        f"Disk: {droplet.get('disk')} GB\n"
        f"IP: {ip}\n\n"
        f"SSH Access: ssh root@{ip}\n\n"
        f"Created: {droplet.get('created_at')}"
    )
    rows = [
        [_button(conv, "🔄 Rebuild Droplet", "rb", droplet["id"])],
        [_button(conv, "🗑️ Delete Droplet", "dl", droplet["id"])],
        [_button(conv, "◀️ Back to List", "ls")],
    ]
    _show(conv, text, keyboard(rows))
