"""
Persistence adapters.

json_storage keeps the collections on disk (or in memory for tests);
entities layers identity, tracking numbers and timestamps on top of it;
session_repository stores admin sessions in SQL.
"""
