"""Price sync pipeline.

Concurrent paginated fetching, change detection, and apply against the
target catalog.
"""
