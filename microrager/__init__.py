"""
Microrager - a daily mood board with color votes.

This package provides a small HTTP service that stores one short message per
visitor per day and aggregates color votes on those messages. Each calendar
day lives in its own JSON document in a blob store.
"""

__version__ = "0.1.0"
