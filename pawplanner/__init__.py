"""
Paw Planner - Source Package

The event model and live synchronization engine behind a personal
pet organizer (pets, calendar events, shopping list, expenses).

DESIGN PRINCIPLES:
1. One recurrence predicate for every calendar view
2. Every collection is reconciled by a single merge rule
3. Feeds are opened and closed by a session, never leaked
4. Failures are reported, never fatal
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Paw Planner Team"
