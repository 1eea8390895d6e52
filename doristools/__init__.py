"""Diagnostic tools, log analysis and output parsing for Apache Doris clusters."""

__version__ = "0.1.0"