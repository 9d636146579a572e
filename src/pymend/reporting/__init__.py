"""Reporting for pymend.

This package provides console and JSON reporters for repair outcomes.
"""

from pymend.reporting.console import ConsoleReporter
from pymend.reporting.json_reporter import JsonReporter


__all__ = [
    'ConsoleReporter',
    'JsonReporter',
]
