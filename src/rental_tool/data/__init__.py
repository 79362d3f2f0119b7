"""Data subpackage - spreadsheet ingestion and export."""
