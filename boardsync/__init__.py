"""
Trello to Google Calendar due-date sync.
"""

__version__ = "1.0.0"
