"""
Search Bounded Context

Search sessions: results owned by one user, browsed three at a time.
"""
