"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Object storage port and its S3 / filesystem adapters
- Metadata helpers (MIME type, storage keys, name validation)

Keep infrastructure concerns separate from business logic.
"""
