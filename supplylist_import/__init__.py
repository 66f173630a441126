"""Bulk supply-list import and reconciliation.

Reads a spreadsheet of schools, courses, subjects, lists and line items,
groups the rows, resolves each group against the remote content store
(creating schools and courses only when they do not exist yet), matches PDF
documents to groups and appends list versions to the target courses.
"""

__version__ = "0.3.0"
