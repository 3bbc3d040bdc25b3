"""Collaborators answering the dashboard's read-only queries."""

from .base import DashboardSource
from .frames import FrameSource
from .rest import RestSource
from .workbook import load_workbook_source, load_workbook_tables, write_workbook

__all__ = [
    "DashboardSource",
    "FrameSource",
    "RestSource",
    "load_workbook_source",
    "load_workbook_tables",
    "write_workbook",
]
