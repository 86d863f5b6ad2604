"""aska — source ingestion and multi-track content generation.

Sub-packages:
  content    — data models and the JSON-backed store
  sourcing   — raw text -> enriched source records
  generator  — track registry, usage ledger, single-track flow, fan-out
"""

__version__ = "0.4.0"
