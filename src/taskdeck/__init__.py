"""taskdeck: tasks, tags, epics, checklists and a single-task stopwatch."""

__version__ = "0.1.0"
