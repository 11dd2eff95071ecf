"""UpTier: recurring tasks, deadline risk and reminders for a personal task manager."""

__version__ = "0.1.0"
