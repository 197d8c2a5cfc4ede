"""Fake collaborators for testing.

Deterministic stand-ins for the remote title generator and the blob store,
so service tests never touch the network and can inject storage failures
at a chosen point of a multi-collection operation.
"""
import copy
from collections import Counter
from typing import Dict, List, Optional, Set

from memospace_mcp.exceptions import ErrorCode, ExternalServiceError, StorageError
from memospace_mcp.storage.base import BlobStore, Collection, Document
from memospace_mcp.services.title_service import TitleGenerator


class FakeTitleGenerator(TitleGenerator):
    """Returns a fixed title and records every content it was asked about."""

    def __init__(self, title: str = "Generated Title") -> None:
        self.title = title
        self.calls: List[str] = []

    def generate(self, content: str) -> str:
        self.calls.append(content)
        return self.title


class FailingTitleGenerator(TitleGenerator):
    """Always fails, as an unreachable service would."""

    def __init__(self, code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_FAILED) -> None:
        self.code = code
        self.calls = 0

    def generate(self, content: str) -> str:
        self.calls += 1
        raise ExternalServiceError("service unavailable", code=self.code)


class BrokenTitleGenerator(TitleGenerator):
    """Fails with an error outside the domain hierarchy."""

    def __init__(self) -> None:
        self.calls = 0

    def generate(self, content: str) -> str:
        self.calls += 1
        raise RuntimeError("generator crashed")


class InMemoryBlobStore(BlobStore):
    """Blob store holding deep copies of documents in a dict.

    Attributes:
        fail_save: Collections whose next saves raise StorageError.
        fail_load: Collections whose loads raise StorageError.
        save_log: Collections in the order they were saved.
    """

    def __init__(self, documents: Optional[Dict[Collection, Document]] = None) -> None:
        self.documents: Dict[Collection, Document] = {
            collection: copy.deepcopy(document)
            for collection, document in (documents or {}).items()
        }
        self.fail_save: Set[Collection] = set()
        self.fail_load: Set[Collection] = set()
        self.save_log: List[Collection] = []
        self.save_counts: Counter = Counter()

    def exists(self, collection: Collection) -> bool:
        return collection in self.documents

    def load(self, collection: Collection) -> Optional[Document]:
        if collection in self.fail_load:
            raise StorageError(
                f"injected read failure for {collection.value}",
                operation="load",
                collection=collection.value,
                code=ErrorCode.STORAGE_READ_FAILED,
            )
        document = self.documents.get(collection)
        return copy.deepcopy(document) if document is not None else None

    def save(self, collection: Collection, document: Document) -> None:
        if collection in self.fail_save:
            raise StorageError(
                f"injected write failure for {collection.value}",
                operation="save",
                collection=collection.value,
                code=ErrorCode.STORAGE_WRITE_FAILED,
            )
        self.documents[collection] = copy.deepcopy(document)
        self.save_log.append(collection)
        self.save_counts[collection] += 1
