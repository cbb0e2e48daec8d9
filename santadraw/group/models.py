"""Data models for the group blueprint."""

from __future__ import annotations

import random
import string
import time
from typing import Any, NewType, TypedDict

from santadraw.constants import (
    ANONYMOUS_DISPLAY_NAME,
    FIELD_ID_PREFIX,
    FIELD_ID_SUFFIX_LENGTH,
    UNKNOWN_ORGANIZER_NAME,
    UNTITLED_GROUP_NAME,
)
from santadraw.core.types import FirestoreDocument
from santadraw.errors import ValidationError

FieldId = NewType("FieldId", str)

_BASE36 = string.digits + string.ascii_lowercase


class MemberProfile(TypedDict):
    """A member's display snapshot, copied into the group at join time."""

    displayName: str
    photoURL: str | None


class Assignment(TypedDict):
    """Who a giver buys for, with the recipient's profile as of the draw."""

    recipientId: str
    recipientName: str
    recipientPhotoURL: str | None


class CustomField(TypedDict):
    """A question every member answers when joining."""

    id: FieldId
    label: str
    placeholder: str | None


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str | None
    ownerId: str
    ownerName: str
    ownerPhotoURL: str | None
    memberIds: list[str]
    members: dict[str, MemberProfile]
    customFields: list[CustomField]
    memberResponses: dict[str, dict[FieldId, str]]
    assignments: dict[str, Assignment] | None
    drawRunAt: Any


def generate_field_id() -> FieldId:
    """Return a new custom field id: epoch milliseconds plus a random suffix."""
    rng = random.SystemRandom()
    suffix = "".join(rng.choice(_BASE36) for _ in range(FIELD_ID_SUFFIX_LENGTH))
    return FieldId(f"{FIELD_ID_PREFIX}_{int(time.time() * 1000)}_{suffix}")


def build_custom_fields(raw_fields: list[dict[str, Any]] | None) -> list[CustomField]:
    """Validate authored custom fields and return the list to persist.

    Rows whose label is blank are dropped, like an empty row left in the
    create form. Rows without an id get a fresh one. Duplicate ids are
    rejected because the id keys every member's answers.
    """
    fields: list[CustomField] = []
    seen: set[str] = set()
    for raw in raw_fields or []:
        label = (raw.get("label") or "").strip()
        if not label:
            continue
        field_id = (raw.get("id") or "").strip() or generate_field_id()
        if field_id in seen:
            raise ValidationError(f"Duplicate custom field id: {field_id}")
        seen.add(field_id)
        placeholder = (raw.get("placeholder") or "").strip() or None
        fields.append(
            {"id": FieldId(field_id), "label": label, "placeholder": placeholder}
        )
    return fields


def profile_snapshot(display_name: str, photo_url: str | None) -> MemberProfile:
    """Return a fresh profile copy to store on a group."""
    return {"displayName": display_name, "photoURL": photo_url or None}


def _timestamp_millis(value: Any) -> int:
    if value is None:
        return 0
    if hasattr(value, "timestamp"):
        return int(value.timestamp() * 1000)
    return 0


def sort_groups(groups: list[Group]) -> list[Group]:
    """Newest first; groups without a creation time go last."""
    return sorted(
        groups, key=lambda g: _timestamp_millis(g.get("createdAt")), reverse=True
    )


def group_from_snapshot(doc: Any) -> Group:
    """Build a normalized Group from a Firestore document snapshot."""
    data = doc.to_dict() or {}
    return {
        "id": doc.id,
        "name": data.get("name") or UNTITLED_GROUP_NAME,
        "description": data.get("description") or None,
        "ownerId": data.get("ownerId") or "",
        "ownerName": data.get("ownerName") or UNKNOWN_ORGANIZER_NAME,
        "ownerPhotoURL": data.get("ownerPhotoURL"),
        "memberIds": list(data.get("memberIds") or []),
        "members": dict(data.get("members") or {}),
        "customFields": list(data.get("customFields") or []),
        "memberResponses": dict(data.get("memberResponses") or {}),
        "assignments": data.get("assignments") or None,
        "createdAt": data.get("createdAt"),
        "drawRunAt": data.get("drawRunAt"),
    }


def member_roster(group: Group) -> list[dict[str, Any]]:
    """Members sorted by display name, with role and per-field answers."""
    fields = group.get("customFields") or []
    responses = group.get("memberResponses") or {}
    assignments = group.get("assignments") or {}
    roster = []
    for member_id, profile in (group.get("members") or {}).items():
        answers = responses.get(member_id) or {}
        roster.append(
            {
                "id": member_id,
                "displayName": profile.get("displayName") or ANONYMOUS_DISPLAY_NAME,
                "photoURL": profile.get("photoURL"),
                "role": (
                    "Organizer" if member_id == group.get("ownerId") else "Participant"
                ),
                "assigned": member_id in assignments,
                "answers": [
                    (field["label"], answers[field["id"]])
                    for field in fields
                    if answers.get(field["id"])
                ],
            }
        )
    roster.sort(key=lambda m: m["displayName"].lower())
    return roster


def visible_to(group: Group, viewer_id: str) -> Group:
    """Copy of ``group`` that only carries the viewer's own assignment."""
    visible: Group = dict(group)  # type: ignore[assignment]
    own = (group.get("assignments") or {}).get(viewer_id)
    visible["assignments"] = {viewer_id: own} if own else None
    return visible
