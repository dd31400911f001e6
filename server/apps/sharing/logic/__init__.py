"""Business logic layer for sharing app.

- Share lifecycle: create, protect, expire, revoke, resolve by token
- Access resolution combining ownership, public flags and shares
"""
