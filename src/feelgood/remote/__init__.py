"""Remote mirror of the local journal."""

from __future__ import annotations

from .firestore import DocumentStore, FirestoreDocumentStore, RemoteStoreError

__all__ = ["DocumentStore", "FirestoreDocumentStore", "RemoteStoreError"]
