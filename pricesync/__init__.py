"""pricesync - catalog and price synchronization from a paginated remote API.

Fetches items and pricing documents concurrently, canonicalizes them into
Product records, and classifies the differences against a target catalog
as inserts and updates.
"""

__version__ = "0.1.0"
