"""
todosync - Two-way sync between a local todo store and a remote todo API

Reconciles lists and items on a fixed interval: links records across the
two id spaces, propagates deletions, creates what is missing on either side
and settles edits by last writer wins.
"""

__version__ = "1.0.0"
__description__ = "Two-way sync between a local todo store and a remote todo API"
