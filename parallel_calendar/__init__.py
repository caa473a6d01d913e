"""Parallel Calendar Package — scheduling backend for tasks and time slots.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
