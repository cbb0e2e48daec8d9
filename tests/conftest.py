"""Common utilities for tests."""

import copy
import datetime
from typing import Any, Iterator, Optional
from unittest.mock import MagicMock

from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference

SERVER_TIME = datetime.datetime(2024, 12, 1, 12, 0, tzinfo=datetime.timezone.utc)


class MockArrayUnion:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


def mock_firestore_module(db: Any) -> MagicMock:
    """A stand-in for ``firebase_admin.firestore`` bound to ``db``."""
    module = MagicMock()
    module.client.return_value = db
    module.FieldFilter = MockFieldFilter
    module.ArrayUnion = MockArrayUnion
    module.SERVER_TIMESTAMP = SERVER_TIME
    return module


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and field paths."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    # Looking up a missing document leaves an empty placeholder behind;
    # Firestore never returns those from a collection read.
    if not hasattr(CollectionReference, "_orig_stream"):
        CollectionReference._orig_stream = CollectionReference.stream

        def collection_stream(self: Any, transaction: Any = None) -> Any:
            return (doc for doc in self._orig_stream() if doc.exists)

        CollectionReference.stream = collection_stream

    if not hasattr(DocumentReference, "_orig_update"):
        DocumentReference._orig_update = DocumentReference.update

        def patched_update(self: Any, data: dict[str, Any]) -> None:
            snapshot = self.get()
            if not snapshot.exists:
                raise ValueError(f"No document to update: {self.id}")
            document = copy.deepcopy(snapshot.to_dict())
            for key, value in data.items():
                *parents, leaf = key.split(".")
                target = document
                for part in parents:
                    if not isinstance(target.get(part), dict):
                        target[part] = {}
                    target = target[part]
                if isinstance(value, MockArrayUnion):
                    # Firestore does a set union
                    merged = list(target.get(leaf) or [])
                    for item in value.values:
                        if item not in merged:
                            merged.append(item)
                    target[leaf] = merged
                else:
                    target[leaf] = copy.deepcopy(value)
            self.set(document)

        DocumentReference.update = patched_update
