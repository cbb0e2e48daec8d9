"""Core module for the santadraw application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
