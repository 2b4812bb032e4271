"""
Admin data access layer.

Client-side query cache and canonicalization engine sitting between admin
views and the remote resource APIs.
"""
