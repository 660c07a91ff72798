"""
Local filesystem access, file moves and move tracking.
"""
