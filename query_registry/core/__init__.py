"""
CORE LAYER CONTRACT

This package contains the storage core of the query registry.

RULES:
- Defines models, errors, interfaces and the timeout policy
- Defines the revision log and archiving rules as SQL statements
- Owns the PostgreSQL connection pool (core.database)
- No document-level business flow (use repositories)

LAYER RESPONSIBILITY:
- QueryRegistryError hierarchy
- Decoding of stored documents into domain shapes
- Timeout budgeting of every store operation

CROSS-LAYER RESTRICTIONS:
- No imports from repositories or the facade
- Only query_registry.config may be imported from outside the layer

If you need document-level operations, you are in the wrong layer.
"""
