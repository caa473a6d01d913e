"""Repositories — SQLAlchemy implementations of the core repository Protocols.

Invariants:
    - Repositories receive the store handle (DatabaseSessionManager) by reference;
      each operation opens and closes its own session
    - Rows never leave this package: every return value is a core entity
"""
