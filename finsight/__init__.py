"""
FinSight - Source Package

Budget and net-worth derivation engine for a personal finance tracker.
Users record expenses, assets and debts; this package derives the monthly
50/30/20 budget picture and a live net-worth figure from those records.

DESIGN PRINCIPLES:
1. Derived numbers are recomputed, never trusted from a cache
2. Remaining cash is never money you own
3. Two writes that belong together commit together
4. Every owner sees only their own ledger
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinSight Team"
