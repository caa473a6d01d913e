"""Pydantic Schemas — request/response models for the HTTP boundary.

Invariants:
    - Schemas validate types and shapes only; scheduling rules stay in core/
    - Each request schema converts itself to a core entity (to_domain / apply_to);
      each response schema builds itself from a core entity (from_domain)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
