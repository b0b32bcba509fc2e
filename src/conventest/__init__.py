"""
conventest - convention-driven test discovery and execution.

A pluggable convention decides:
- Which classes are test classes and which methods are test cases
- How test instances are constructed, shared and disposed
- Which parameters each case receives and which cases are skipped

The engine runs the resulting cases, reports results to listeners, and can be
driven by an external host process over a point-to-point channel.
"""

from conventest.markers import cases, skip, static, tag, use_fixture

__version__ = "0.1.0"
__author__ = "conventest Team"

__all__ = ["cases", "skip", "static", "tag", "use_fixture"]
