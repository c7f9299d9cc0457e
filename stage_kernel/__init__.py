"""
Stage Kernel - production stage allocation engine.

Tracks a manufactured order line through six ordered stages with:
- Quantity conservation across all stage counters
- Row-locked read-modify-write for every mutation
- Derived production status recomputed on each change
- Append-only production, shipment and audit records
"""

__version__ = "0.1.0"
