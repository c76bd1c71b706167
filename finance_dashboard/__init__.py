"""
Finance Dashboard - Source Package

Recurring expense tracking for personal and business finances: monthly
cost trends rebuilt from expense history, totals, and automation
schedules.

DESIGN PRINCIPLES:
1. History is the source of truth; derived figures are recomputed
2. Fail early, fail visibly - never chart partial data
3. Storage layer is swappable
4. Every data load is auditable
"""

__version__ = "1.0.0"
__author__ = "Finance Dashboard Team"
