"""
Rule-based file organizer: sorts the files of a directory into category,
date or size folders, with preview and rollback of partial moves.
"""

__version__ = "1.0.0"
