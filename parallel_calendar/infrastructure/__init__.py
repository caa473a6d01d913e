"""Infrastructure Layer — storage handle and cross-cutting concerns.

Invariants:
    - Infrastructure never imports domain logic beyond core/errors.py
    - All storage failures mapped to typed CalendarError subclasses
"""
