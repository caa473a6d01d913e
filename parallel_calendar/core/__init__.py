"""Core Layer — pure scheduling domain, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from repositories/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (except id generation and clocks)

Design Decisions:
    - Functional core separated from imperative shell: repositories fetch the
      snapshot, core decides, repositories write
"""
