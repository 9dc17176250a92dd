"""
Type aliases for the statquery system.

Provides reusable, descriptive type aliases for common patterns
to improve code readability and type safety.
"""

from typing import Any, Dict, List


# One result row: {column_name: value}, column order follows the result set
Row = Dict[str, Any]

# Ordered result rows
Rows = List[Row]

# Embedding vector as returned by the embedding capability
Vector = List[float]
