"""Content domain: portfolio content records and the document store.

A single ContentRecord model covers projects, hackathon write-ups and
blog posts; JsonDocumentStore holds them and pushes live updates to
subscribers.
"""

from showcase.content.models import (
    BlogPayload,
    CollectionType,
    ContentRecord,
    HackathonPayload,
    ProjectPayload,
)
from showcase.content.store import DocumentStore, JsonDocumentStore

__all__ = [
    "BlogPayload",
    "CollectionType",
    "ContentRecord",
    "DocumentStore",
    "HackathonPayload",
    "JsonDocumentStore",
    "ProjectPayload",
]
