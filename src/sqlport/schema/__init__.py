"""Schema descriptors and dependency ordering.

The introspector lives in ``sqlport.schema.introspector`` and is imported
from there (it depends on the dialect layer, which depends on these models).

Usage:
    >>> from sqlport.schema import TableDescriptor, resolve_order
    >>> from sqlport.schema.introspector import SchemaIntrospector
"""

from sqlport.schema.dependencies import (
    DependencyOrder,
    build_dependency_graph,
    resolve_order,
    topological_order,
)
from sqlport.schema.models import (
    CatalogSnapshot,
    ColumnDefault,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SemanticType,
    TableDescriptor,
    ViewDescriptor,
)

__all__ = [
    "CatalogSnapshot",
    "ColumnDefault",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "IndexDescriptor",
    "SemanticType",
    "TableDescriptor",
    "ViewDescriptor",
    "DependencyOrder",
    "build_dependency_graph",
    "resolve_order",
    "topological_order",
]
