# storefront/repos/store.py
import operator
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, NamedTuple

from storefront.domain.exceptions import ConflictError, NotFoundError, StoreError, StorefrontError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class Filter(NamedTuple):
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class QueryOptions:
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None


_OPS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda left, right: left in right,
}


def _matches(doc: dict, f: Filter) -> bool:
    try:
        compare = _OPS[f.op]
    except KeyError:
        raise StoreError(f"Unsupported filter operator: {f.op}")

    value = doc.get(f.field)
    if value is None and f.op not in ("==", "!=", "in"):
        return False
    try:
        return compare(value, f.value)
    except TypeError:
        return False


def apply_query(docs: Iterable[dict], filters: list[Filter], options: QueryOptions) -> list[dict]:
    """Filter, sort and limit documents in memory. Missing sort keys go last."""
    result = [d for d in docs if all(_matches(d, f) for f in filters)]

    if options.order_by:
        present = [d for d in result if d.get(options.order_by) is not None]
        missing = [d for d in result if d.get(options.order_by) is None]
        present.sort(key=lambda d: d[options.order_by], reverse=options.descending)
        result = present + missing

    if options.limit is not None:
        result = result[: options.limit]
    return result


class DocumentStore(ABC):
    """
    Key-value access to a hierarchical document store.

    Every returned document is a fresh dict carrying its "id" and the
    store-managed "version" (1 after the first write, +1 per write).
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict | None:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict) -> dict:
        ...

    @abstractmethod
    def create(self, collection: str, doc_id: str, data: dict) -> dict:
        """Write only if absent. Raises ConflictError when the document already exists."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, patch: dict, if_version: int | None = None) -> dict:
        """Shallow merge. Raises NotFoundError if absent, ConflictError on version mismatch."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        options: QueryOptions | None = None,
    ) -> list[dict]:
        ...

    def generate_id(self) -> str:
        return uuid.uuid4().hex


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for tests and local development."""

    def __init__(self):
        self._collections: dict[str, dict[str, tuple[int, dict]]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _doc(doc_id: str, version: int, data: dict) -> dict:
        doc = deepcopy(data)
        doc["id"] = doc_id
        doc["version"] = version
        return doc

    @staticmethod
    def _strip(data: dict) -> dict:
        return {k: deepcopy(v) for k, v in data.items() if k not in ("id", "version")}

    def get(self, collection, doc_id):
        with self._lock:
            entry = self._collections.get(collection, {}).get(doc_id)
            if entry is None:
                return None
            return self._doc(doc_id, *entry)

    def set(self, collection, doc_id, data):
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            version = docs[doc_id][0] + 1 if doc_id in docs else 1
            docs[doc_id] = (version, self._strip(data))
            return self._doc(doc_id, *docs[doc_id])

    def create(self, collection, doc_id, data):
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if doc_id in docs:
                raise ConflictError(collection, doc_id, 0, docs[doc_id][0])
            docs[doc_id] = (1, self._strip(data))
            return self._doc(doc_id, *docs[doc_id])

    def update(self, collection, doc_id, patch, if_version=None):
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise NotFoundError(f"{collection}/{doc_id} not found")

            version, data = docs[doc_id]
            if if_version is not None and version != if_version:
                raise ConflictError(collection, doc_id, if_version, version)

            merged = {**data, **self._strip(patch)}
            docs[doc_id] = (version + 1, merged)
            return self._doc(doc_id, *docs[doc_id])

    def delete(self, collection, doc_id):
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)

    def query(self, collection, filters=None, options=None):
        with self._lock:
            docs = [
                self._doc(doc_id, version, data)
                for doc_id, (version, data) in self._collections.get(collection, {}).items()
            ]
        return apply_query(docs, filters or [], options or QueryOptions())


@contextmanager
def store_errors(message: str, **details) -> Iterator[None]:
    """
    Re-raise unexpected store failures as StoreError(message).
    Domain errors (not found, conflicts, validation) pass through unchanged.
    """
    try:
        yield
    except ConflictError:
        raise
    except StorefrontError as e:
        if not isinstance(e, StoreError):
            raise
        logger.error(f"{message}: {e}")
        raise StoreError(message, details=details) from e
    except Exception as e:
        logger.exception(f"{message}: {e}")
        raise StoreError(message, details=details) from e
