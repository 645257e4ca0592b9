"""
Command-Line Interface Layer.

Typer commands, the Rich progress display and console formatters.
"""
