"""Join-by-code and custom-field collection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

from santadraw.constants import JOIN_CODE_MIN_LENGTH
from santadraw.errors import (
    AlreadyMember,
    IncompleteResponses,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from santadraw.group.models import CustomField, FieldId, profile_snapshot

if TYPE_CHECKING:
    from santadraw.group.store import GroupStore


class MembershipService:
    """Validates and applies join requests."""

    @staticmethod
    def load_join_schema(
        store: GroupStore, code: str | None, min_length: int = JOIN_CODE_MIN_LENGTH
    ) -> list[CustomField]:
        """Return the custom fields a joiner must fill in for ``code``.

        Codes shorter than ``min_length`` are not looked up. Unknown codes and
        store failures yield an empty schema.
        """
        code = (code or "").strip()
        if len(code) < min_length:
            return []
        try:
            group = store.get(code)
        except StoreUnavailable as e:
            current_app.logger.warning(
                f"Could not load join schema for {code}: {e.message}"
            )
            return []
        if group is None:
            return []
        return list(group.get("customFields") or [])

    @staticmethod
    def missing_fields(
        fields: list[CustomField], responses: dict[str, str] | None
    ) -> list[CustomField]:
        """Fields whose response is absent or blank."""
        responses = responses or {}
        return [f for f in fields if not (responses.get(f["id"]) or "").strip()]

    @staticmethod
    def join(  # noqa: PLR0913
        store: GroupStore,
        code: str | None,
        user_id: str,
        display_name: str,
        photo_url: str | None,
        responses: dict[str, str] | None,
    ) -> str:
        """Add ``user_id`` to the group at ``code`` and return the group id."""
        code = (code or "").strip()
        if not code:
            raise ValidationError("Enter a join code.")

        group = store.get(code)
        if group is None:
            raise NotFound()

        if user_id in group.get("memberIds", []):
            raise AlreadyMember()

        # The schema read here is the one this member answers; fields are
        # fixed at creation so it cannot drift under a later join.
        fields = group.get("customFields") or []
        missing = MembershipService.missing_fields(fields, responses)
        if missing:
            raise IncompleteResponses([f["label"] for f in missing])

        answers: dict[FieldId, str] = {
            f["id"]: (responses or {})[f["id"]].strip() for f in fields
        }
        store.update_fields(
            code,
            {
                "memberIds": store.array_union([user_id]),
                f"members.{user_id}": profile_snapshot(display_name, photo_url),
                f"memberResponses.{user_id}": answers,
            },
        )
        current_app.logger.info(f"User {user_id} joined group {code}")
        return code
