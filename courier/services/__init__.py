"""
High-level use cases for the courier API.

Routers call these services (or the entity repositories for plain reads)
instead of touching the JSON collections or the session table directly.
"""
