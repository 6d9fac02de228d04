"""Quill — blog platform API.

User accounts with access/refresh token sessions, public profiles,
and posts that only their author can change.
"""

__version__ = "0.1.0"
