"""Business logic layer for files app.

This package contains all business logic for file operations:
- Quota ledger: reserve and release per-user storage
- File upload, download, delete, rename, move
- Folder hierarchy management and cascading deletion

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).

Reference: https://github.com/dry-python
for decoupling business logic from Django views.
"""
