"""Randomized gift assignment for a group."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from flask import current_app

from santadraw.constants import MIN_DRAW_MEMBERS, MYSTERY_RECIPIENT_NAME
from santadraw.errors import Forbidden, InsufficientMembers
from santadraw.group.models import Assignment, Group, MemberProfile

if TYPE_CHECKING:
    from santadraw.group.store import GroupStore


def shuffle(items: list[str], rng: random.Random) -> list[str]:
    """Return a Fisher-Yates shuffled copy of ``items``."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


class DrawEngine:
    """Computes and commits the giver to recipient map."""

    @staticmethod
    def build_assignments(
        member_ids: list[str],
        members: dict[str, MemberProfile],
        rng: random.Random | None = None,
    ) -> dict[str, Assignment]:
        """Chain a shuffled member order into a single cycle.

        The member at shuffled position i gives to the member at i + 1, and
        the last gives to the first, so nobody draws themselves when there
        are at least two members.
        """
        order = shuffle(list(dict.fromkeys(member_ids)), rng or random.SystemRandom())
        assignments: dict[str, Assignment] = {}
        for index, giver_id in enumerate(order):
            recipient_id = order[(index + 1) % len(order)]
            profile = members.get(recipient_id) or {}
            assignments[giver_id] = {
                "recipientId": recipient_id,
                "recipientName": profile.get("displayName") or MYSTERY_RECIPIENT_NAME,
                "recipientPhotoURL": profile.get("photoURL"),
            }
        return assignments

    @staticmethod
    def run_draw(
        store: GroupStore,
        group: Group,
        requester_id: str,
        rng: random.Random | None = None,
    ) -> dict[str, Assignment]:
        """Draw names for ``group`` and persist the result."""
        if requester_id != group.get("ownerId"):
            current_app.logger.warning(
                f"User {requester_id} tried to draw group {group['id']}"
            )
            raise Forbidden()

        member_ids = group.get("memberIds") or []
        if len(set(member_ids)) < MIN_DRAW_MEMBERS:
            raise InsufficientMembers()

        assignments = DrawEngine.build_assignments(
            member_ids, group.get("members") or {}, rng
        )
        store.update_fields(
            group["id"],
            {"assignments": assignments, "drawRunAt": store.server_timestamp()},
        )
        current_app.logger.info(
            f"Draw completed for group {group['id']} ({len(assignments)} members)"
        )
        return assignments


def assignment_for(group: Group, user_id: str) -> Assignment | None:
    """The assignment ``user_id`` is allowed to see, if a draw has run."""
    return (group.get("assignments") or {}).get(user_id)


def recipient_answers(group: Group, user_id: str) -> list[tuple[str, str]]:
    """The custom-field answers of the person ``user_id`` gives to."""
    assignment = assignment_for(group, user_id)
    if assignment is None:
        return []
    answers = (group.get("memberResponses") or {}).get(assignment["recipientId"]) or {}
    return [
        (field["label"], answers[field["id"]])
        for field in group.get("customFields") or []
        if answers.get(field["id"])
    ]
