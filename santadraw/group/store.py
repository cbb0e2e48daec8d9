"""Firestore adapter for group documents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from santadraw.constants import GROUPS_COLLECTION
from santadraw.errors import StoreUnavailable

from .models import Group, group_from_snapshot

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

class MemberWatch:
    """Handle for a running group watch. Calling it stops the watch.

    Firestore closes a watch whose stream fails without calling back, so
    ``is_active`` is the only way to notice a watch that has died.
    """

    def __init__(self, watch: Any = None) -> None:
        self._watch = watch

    @property
    def is_active(self) -> bool:
        return self._watch is not None and bool(self._watch.is_active)

    def __call__(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None


class GroupStore:
    """Reads, writes and watches documents in the groups collection.

    Every Firestore failure surfaces as ``StoreUnavailable`` so callers only
    deal with the application's error taxonomy.
    """

    def __init__(self, db: Client | None = None, collection: str = GROUPS_COLLECTION):
        """Bind the adapter to a Firestore client."""
        self.db = db if db is not None else firestore.client()
        self.collection = collection

    @staticmethod
    def server_timestamp() -> Any:
        """Sentinel the server replaces with its commit time."""
        return firestore.SERVER_TIMESTAMP

    @staticmethod
    def array_union(values: list[Any]) -> Any:
        """Sentinel that merges values into an array field without duplicates."""
        return firestore.ArrayUnion(values)

    def _collection(self) -> Any:
        return self.db.collection(self.collection)

    def _member_query(self, member_id: str) -> Any:
        return self._collection().where(
            filter=firestore.FieldFilter("memberIds", "array_contains", member_id)
        )

    def subscribe_member_groups(
        self,
        member_id: str,
        on_next: Callable[[list[Group]], None],
        on_error: Callable[[StoreUnavailable], None],
    ) -> MemberWatch:
        """Watch the groups containing ``member_id``.

        ``on_next`` receives every group in the result set on each change,
        on Firestore's listener thread. ``on_error`` is only called when the
        watch cannot be started.
        """

        def on_snapshot(docs: list[Any], changes: Any, read_time: Any) -> None:
            on_next([group_from_snapshot(doc) for doc in docs if doc.exists])

        try:
            watch = self._member_query(member_id).on_snapshot(on_snapshot)
        except (GoogleAPIError, ValueError) as e:
            logger.error(f"Failed to watch groups for {member_id}: {e}")
            on_error(StoreUnavailable("Unable to load your groups right now."))
            return MemberWatch()
        return MemberWatch(watch)

    def list_member_groups(self, member_id: str) -> list[Group]:
        """Read the groups containing ``member_id`` once."""
        try:
            docs = list(self._member_query(member_id).stream())
        except GoogleAPIError as e:
            logger.error(f"Failed to list groups for {member_id}: {e}")
            raise StoreUnavailable("Unable to load your groups right now.") from e
        return [group_from_snapshot(doc) for doc in docs if doc.exists]

    def get(self, group_id: str) -> Group | None:
        """Fetch a group by id, or None when there is no such document."""
        # A slash would address a subcollection rather than a document.
        if not group_id or "/" in group_id:
            return None
        try:
            doc = self._collection().document(group_id).get()
        except GoogleAPIError as e:
            logger.error(f"Failed to read group {group_id}: {e}")
            raise StoreUnavailable() from e
        if not doc.exists:
            return None
        return group_from_snapshot(doc)

    def create(self, fields: dict[str, Any]) -> str:
        """Add a new group document and return its generated id."""
        try:
            _, ref = self._collection().add(fields)
        except GoogleAPIError as e:
            logger.error(f"Failed to create group: {e}")
            raise StoreUnavailable() from e
        return ref.id

    def update_fields(self, group_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update; dotted keys address nested map entries."""
        try:
            self._collection().document(group_id).update(fields)
        except GoogleAPIError as e:
            logger.error(f"Failed to update group {group_id}: {e}")
            raise StoreUnavailable() from e

    def delete(self, group_id: str) -> None:
        """Remove the group document."""
        try:
            self._collection().document(group_id).delete()
        except GoogleAPIError as e:
            logger.error(f"Failed to delete group {group_id}: {e}")
            raise StoreUnavailable() from e
