# storefront/repos/sql_store.py
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from storefront.data.models.document import DocumentModel
from storefront.domain.exceptions import ConflictError, NotFoundError, StoreError
from storefront.repos.store import DocumentStore, QueryOptions, apply_query
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class SqlDocumentStore(DocumentStore):
    """
    Documents as JSON rows of a single `documents` table keyed by
    (collection, id). Conditional updates use the version column the same
    way carts were optimistically locked: UPDATE ... WHERE version = :old.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _doc(row: DocumentModel) -> dict:
        doc = dict(row.data or {})
        doc["id"] = row.id
        doc["version"] = row.version
        return doc

    @staticmethod
    def _strip(data: dict) -> dict:
        return {k: v for k, v in data.items() if k not in ("id", "version")}

    def _session(self) -> Session:
        return self.session_factory()

    def get(self, collection, doc_id):
        try:
            with self._session() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                return self._doc(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {collection}/{doc_id}") from e

    def set(self, collection, doc_id, data):
        try:
            with self._session() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                if row:
                    row.data = self._strip(data)
                    row.version = row.version + 1
                else:
                    row = DocumentModel(
                        collection=collection,
                        id=doc_id,
                        data=self._strip(data),
                        version=1,
                    )
                    db.add(row)
                db.commit()
                db.refresh(row)
                return self._doc(row)
        except IntegrityError as e:
            # another writer inserted the same key first
            raise ConflictError(collection, doc_id, 0, None) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to write {collection}/{doc_id}") from e

    def create(self, collection, doc_id, data):
        try:
            with self._session() as db:
                # plain INSERT; the primary key rejects a second writer
                row = DocumentModel(
                    collection=collection,
                    id=doc_id,
                    data=self._strip(data),
                    version=1,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return self._doc(row)
        except IntegrityError as e:
            raise ConflictError(collection, doc_id, 0, None) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create {collection}/{doc_id}") from e

    def update(self, collection, doc_id, patch, if_version=None):
        try:
            with self._session() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                if not row:
                    raise NotFoundError(f"{collection}/{doc_id} not found")

                if if_version is not None and row.version != if_version:
                    raise ConflictError(collection, doc_id, if_version, row.version)

                old_version = row.version
                merged = {**(row.data or {}), **self._strip(patch)}

                result = db.execute(
                    update(DocumentModel)
                    .where(
                        DocumentModel.collection == collection,
                        DocumentModel.id == doc_id,
                        DocumentModel.version == old_version,
                    )
                    .values(data=merged, version=old_version + 1)
                    .execution_options(synchronize_session=False)
                )

                # 0 rows: somebody bumped the version between our read and write
                if result.rowcount == 0:
                    db.rollback()
                    raise ConflictError(collection, doc_id, old_version, None)

                db.commit()

                doc = dict(merged)
                doc["id"] = doc_id
                doc["version"] = old_version + 1
                return doc
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update {collection}/{doc_id}") from e

    def delete(self, collection, doc_id):
        try:
            with self._session() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                if row:
                    db.delete(row)
                    db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete {collection}/{doc_id}") from e

    def query(self, collection, filters=None, options=None):
        try:
            with self._session() as db:
                rows = db.execute(
                    select(DocumentModel).where(DocumentModel.collection == collection)
                ).scalars().all()
                docs = [self._doc(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query {collection}") from e

        logger.debug(f"Query {collection}: {len(docs)} candidate documents")
        return apply_query(docs, filters or [], options or QueryOptions())
