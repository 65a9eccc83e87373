"""
Core utilities shared across the courier API.

- configuration (env vars, storage paths)
- logging setup
- password hashing helpers
"""
