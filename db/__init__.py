"""
db/ - Database Layer
====================
Owns the PostgreSQL connection pool and executes prepared statements.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""

from db.connection import Database

__all__ = ["Database"]
