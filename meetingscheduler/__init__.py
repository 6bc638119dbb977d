"""
meetingscheduler - conflict-aware meeting scheduling over local and external calendars.
"""

__version__ = "0.1.0"
