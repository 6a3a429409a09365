"""Table store layer.

This package owns RethinkDB connections, table setup, and batched
soft-durability writes.
"""
