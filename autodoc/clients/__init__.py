"""Collaborator clients: page store, source reader and text converter."""

from .confluence import ConfluenceClient, Page
from .git import CommitDiff, CommitInfo, GitSourceReader, HistoryEntry, validate_commit_id
from .markup import to_markup

__all__ = [
    "ConfluenceClient",
    "Page",
    "CommitDiff",
    "CommitInfo",
    "GitSourceReader",
    "HistoryEntry",
    "validate_commit_id",
    "to_markup",
]
