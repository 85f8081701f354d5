"""
app/mappers package marker.
"""

from app.mappers.row_accessor import FlatRow, NestedRow, RowAccessor, is_nested_row, wrap_row
from app.mappers.row_extractor import extract_rows

__all__ = [
    "FlatRow",
    "NestedRow",
    "RowAccessor",
    "extract_rows",
    "is_nested_row",
    "wrap_row",
]
