"""Database Declarations — SQLAlchemy Base shared by ORM models and migrations.

Invariants:
    - Engine/session lifecycle lives in infrastructure/database.py, not here
"""
