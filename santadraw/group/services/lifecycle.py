"""Creating and deleting groups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import current_app

from santadraw.errors import Forbidden, ValidationError
from santadraw.group.models import Group, build_custom_fields, profile_snapshot

if TYPE_CHECKING:
    from santadraw.auth.identity import Identity
    from santadraw.group.store import GroupStore


class GroupLifecycle:
    """Owns group creation and organizer-only deletion."""

    @staticmethod
    def create(
        store: GroupStore,
        owner: Identity,
        name: str | None,
        description: str | None = None,
        custom_fields: list[dict[str, Any]] | None = None,
    ) -> str:
        """Persist a new group with ``owner`` as its only member.

        Returns the document id, which doubles as the join code.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Give your group a name first.")

        fields = build_custom_fields(custom_fields)
        owner_name = owner.label
        group_data = {
            "name": name,
            "description": (description or "").strip() or None,
            "ownerId": owner.uid,
            "ownerName": owner_name,
            "ownerPhotoURL": owner.photo_url,
            "memberIds": [owner.uid],
            "members": {owner.uid: profile_snapshot(owner_name, owner.photo_url)},
            "customFields": fields,
            "memberResponses": {},
            "assignments": None,
            "createdAt": store.server_timestamp(),
            "drawRunAt": None,
        }
        group_id = store.create(group_data)
        current_app.logger.info(f"User {owner.uid} created group {group_id}")
        return group_id

    @staticmethod
    def delete(store: GroupStore, group: Group, requester_id: str) -> None:
        """Remove ``group`` for everyone. Only its organizer may do this."""
        if requester_id != group.get("ownerId"):
            current_app.logger.warning(
                f"User {requester_id} tried to delete group {group['id']}"
            )
            raise Forbidden()
        store.delete(group["id"])
        current_app.logger.info(f"User {requester_id} deleted group {group['id']}")
