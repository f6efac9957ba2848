"""
Recipe corpus ingestion.

Responsibilities:
- Read a raw document-store export of recipes (JSON array).
- Normalize it into the canonical recipe columns the Recipe Store loads.
- Persist the processed corpus locally as JSON records.
"""
