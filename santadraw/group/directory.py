"""Live, ordered view of the groups the current user belongs to."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from santadraw.errors import StoreUnavailable

from .models import Group, sort_groups

if TYPE_CHECKING:
    from santadraw.auth.identity import Identity, IdentityAdapter

    from .store import GroupStore, MemberWatch

logger = logging.getLogger(__name__)

Listener = Callable[["GroupDirectory"], None]


class GroupDirectory:
    """Owns the group-list subscription and the current selection.

    Snapshot listeners fire on a background thread, so every delivery
    replaces the whole list under a lock and then re-resolves the selection.
    Each subscription gets a generation number; deliveries from a watch that
    has since been replaced or stopped are dropped.

    Consumers either read the properties (pull) or register a listener that
    is called after each change (push).
    """

    def __init__(
        self,
        store: GroupStore,
        selected_id: str | None = None,
        notices: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        """Create an empty directory, optionally restoring a prior selection."""
        self.store = store
        self._lock = threading.RLock()
        self._groups: list[Group] = []
        self._selected_id = selected_id
        self._notices: dict[str, tuple[str, str]] = dict(notices or {})
        self._error: StoreUnavailable | None = None
        self._user_id: str | None = None
        self._watch: MemberWatch | None = None
        self._generation = 0
        self._listeners: list[Listener] = []

    @property
    def groups(self) -> list[Group]:
        with self._lock:
            return list(self._groups)

    @property
    def selected_id(self) -> str | None:
        with self._lock:
            return self._selected_id

    @property
    def selected_group(self) -> Group | None:
        with self._lock:
            return self._find(self._selected_id)

    @property
    def error(self) -> StoreUnavailable | None:
        """Set while the group feed is failing; cleared by the next delivery.

        A watch that closed on its own also counts as failing.
        """
        with self._lock:
            if self._error is None and self._watch is not None:
                if not self._watch.is_active:
                    return StoreUnavailable(
                        "Your group list stopped updating. Please reload."
                    )
            return self._error

    @property
    def notices(self) -> dict[str, tuple[str, str]]:
        """Transient (category, message) pairs for the selected group."""
        with self._lock:
            return dict(self._notices)

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def set_notice(self, kind: str, category: str, message: str) -> None:
        """Attach a draw or delete result to the current selection."""
        with self._lock:
            self._notices[kind] = (category, message)

    def subscribe(self, user_id: str) -> None:
        """Start watching ``user_id``'s groups, replacing any earlier watch.

        This is the push API for long-lived clients that keep one directory
        per signed-in user. Server-rendered pages call ``refresh`` instead.
        """
        with self._lock:
            if (
                self._watch is not None
                and self._watch.is_active
                and self._user_id == user_id
            ):
                return
        self.unsubscribe()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._user_id = user_id

        watch = self.store.subscribe_member_groups(
            user_id,
            lambda groups: self._deliver(groups, generation),
            lambda error: self._fail(error, generation),
        )
        with self._lock:
            current = generation == self._generation
            if current:
                self._watch = watch
        if not current:
            # Replaced by another subscribe or unsubscribe while starting.
            watch()
            return
        logger.info(f"Subscribed to groups for {user_id}")

    def unsubscribe(self) -> None:
        """Stop the current watch and forget its data. Safe to repeat."""
        with self._lock:
            self._generation += 1
            watch, self._watch = self._watch, None
            user_id = self._user_id
        if watch is not None:
            watch()
            logger.info(f"Unsubscribed from groups for {user_id}")
        with self._lock:
            self._user_id = None
            self._groups = []
            self._error = None
            self._selected_id = None
            self._notices.clear()

    def refresh(self, user_id: str) -> None:
        """Read the group list once instead of waiting for a delivery."""
        with self._lock:
            self._user_id = user_id
            generation = self._generation
        try:
            groups = self.store.list_member_groups(user_id)
        except StoreUnavailable as e:
            self._fail(e, generation)
            return
        self._deliver(groups, generation)

    def select_group(self, group_id: str | None) -> str | None:
        """Select ``group_id`` if visible, else the first group, else None."""
        with self._lock:
            previous = self._selected_id
            self._selected_id = group_id
            self._resolve_selection()
            selected = self._selected_id
            if selected != previous:
                self._notices.clear()
        self._notify()
        return selected

    def bind(self, identity_adapter: IdentityAdapter) -> None:
        """Follow sign-in and sign-out on ``identity_adapter``.

        Like ``subscribe``, this is for long-lived clients; a request-scoped
        adapter is gone before any snapshot could arrive.
        """
        identity_adapter.on_identity_change(self._on_identity_change)

    def _on_identity_change(self, identity: Identity | None) -> None:
        if identity is None:
            self.unsubscribe()
        else:
            self.subscribe(identity.uid)

    def _find(self, group_id: str | None) -> Group | None:
        if group_id is None:
            return None
        return next((g for g in self._groups if g["id"] == group_id), None)

    def _resolve_selection(self) -> None:
        if self._find(self._selected_id) is None:
            self._selected_id = self._groups[0]["id"] if self._groups else None

    def _deliver(self, groups: list[Group], generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Dropped a stale delivery of {len(groups)} groups")
                return
            previous = self._selected_id
            self._groups = sort_groups(groups)
            self._error = None
            self._resolve_selection()
            if self._selected_id != previous:
                self._notices.clear()
        self._notify()

    def _fail(self, error: StoreUnavailable, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._error = error
            user_id = self._user_id
        logger.error(f"Group feed failed for {user_id}: {error.message}")
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def to_dict(self) -> dict[str, Any]:
        """Serializable state for JSON feeds."""
        with self._lock:
            error = self.error
            return {
                "groups": list(self._groups),
                "selectedId": self._selected_id,
                "error": error.message if error else None,
            }
