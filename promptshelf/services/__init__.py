"""
PromptShelf Services

Business logic layer for the prompt library.
"""

from promptshelf.services.persistence import CollectionStore
from promptshelf.services.prompt_store import PromptStoreService
from promptshelf.services.test_runner import TestRunner
from promptshelf.services.version_ledger import VersionLedger

__all__ = [
    "CollectionStore",
    "PromptStoreService",
    "TestRunner",
    "VersionLedger",
]
