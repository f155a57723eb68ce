"""
Goal-Aligned Day - Source Package

The daily aggregation engine behind a personal lifestyle tracker.
Merges completed tasks, time-block entries and habit check-ins into one
deduplicated goal-aligned score per user per day.

DESIGN PRINCIPLES:
1. Every minute is credited exactly once
2. Fail early, fail visibly (no partial day records)
3. Scoring and streak logic are pure and testable without a store
4. Every aggregation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Goal-Aligned Day Team"
