"""
                Tableside Order API

In-memory order management for table-service restaurants: order
creation, item handling, status tracking, paginated listings and
archival of finalized orders.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
