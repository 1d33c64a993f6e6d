"""
Expense Tracker - Source Package

The core of a personal, on-device expense tracker: a record store that owns
the persisted expenses and categories, and a statistics engine that derives
totals and breakdowns from them.

DESIGN PRINCIPLES:
1. One writer, one lock, whole-document persistence
2. Reads degrade quietly, writes fail loudly
3. Money is Decimal until it is displayed
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
