"""
Helpers for URL parsing, path templating, formatting and the error log.
"""
