"""Upload service turning documents into catalog records."""

from .service import CatalogImporter, CreatedRecord, UploadEnvelope, UploadRequest

__all__ = ["CatalogImporter", "CreatedRecord", "UploadEnvelope", "UploadRequest"]
