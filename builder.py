"""
Turns submitted form fields into a PendingRegistration.

Pure function of its inputs and the catalog. Every rule is checked and all
failures are reported together so the form can show them at once.
"""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from catalog import EventCatalog, catalog as default_catalog
from errors import EventNotFound, RegistrationValidationError
from schemas import EventDescriptor, PendingRegistration

# Keys the client may send but which are always computed here
_SERVER_OWNED = {"totalAmount", "total_amount", "eventId", "event_id"}


def compute_total(event: EventDescriptor) -> int:
    # Flat fee per registration, not per team member
    return event.price


def _field_name(loc) -> str:
    return ".".join(str(part) for part in loc)


def _entries(raw: Mapping[str, Any], *keys: str) -> Optional[list]:
    for key in keys:
        if raw.get(key) is not None:
            value = raw[key]
            return value if isinstance(value, list) else None
    return None


def _event_rules(event: EventDescriptor, raw: Mapping[str, Any]) -> List[Dict[str, str]]:
    errors = []
    if event.requires_team:
        members = _entries(raw, "teamMembers", "team_members") or []
        if len(members) != event.team_size:
            errors.append({
                "field": "teamMembers",
                "message": f"{event.name} requires exactly {event.team_size} team member(s), got {len(members)}",
            })
    if event.requires_game_ids:
        game_ids = _entries(raw, "gameIds", "game_ids") or []
        if not game_ids:
            errors.append({
                "field": "gameIds",
                "message": f"{event.name} requires at least one in-game ID",
            })
    return errors


def build(event_id: str, raw_fields: Mapping[str, Any], catalog: Optional[EventCatalog] = None) -> PendingRegistration:
    if catalog is None:
        catalog = default_catalog
    try:
        event = catalog.lookup(event_id)
    except EventNotFound:
        raise RegistrationValidationError([{"field": "eventId", "message": f"Unknown event: {event_id}"}]) from None

    data = {k: v for k, v in raw_fields.items() if k not in _SERVER_OWNED}
    data["eventId"] = event.id
    data["totalAmount"] = compute_total(event)

    errors = _event_rules(event, raw_fields)
    try:
        pending = PendingRegistration.model_validate(data)
    except ValidationError as exc:
        errors.extend({"field": _field_name(e["loc"]), "message": e["msg"]} for e in exc.errors())
        raise RegistrationValidationError(errors) from None

    if errors:
        raise RegistrationValidationError(errors)
    if not event.requires_team:
        pending.team_members = None
    if not event.requires_game_ids:
        pending.game_ids = None
    return pending
