"""
Note Stores.

- local: SQLite system of record
- remote: Remote document store replica
"""
