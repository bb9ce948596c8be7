# import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.document import DocumentModel

__all__ = ["DocumentModel"]
