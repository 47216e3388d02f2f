"""
Subscription Manager - Source Package

The renewal, reminder and exchange-rate core of a personal
subscription tracker.

DESIGN PRINCIPLES:
1. Plain data in, plain data out
2. Never schedule a reminder in the past
3. Availability over accuracy for display-only exchange rates
4. Every side effect is auditable
5. Collaborators (sink, rate source, stores) are injected and swappable
"""

__version__ = "1.0.0"
__author__ = "Subscription Manager Team"
