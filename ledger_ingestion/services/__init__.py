"""Import services."""

from ledger_ingestion.services.import_service import BulkImporter

__all__ = ["BulkImporter"]
