"""
Shared utilities: configuration, logging, errors and reporting.
"""
