"""
Mapper Module

Field-level mapping between two object types:
- Field Selector: resolves field references (lambda t: t.email) to identifiers
- Mapping Configuration: declare / override / ignore directives per type pair
- Mapping Execution: applies the directives to a (source, target) pair
"""

from .selector import FieldIdentifier, FieldAccessor, resolve_field
from .configuration import MappingConfiguration, MappingKey, FieldMapping
from .execution import execute_mapping, check_compatible

__all__ = [
    "FieldIdentifier",
    "FieldAccessor",
    "resolve_field",
    "MappingConfiguration",
    "MappingKey",
    "FieldMapping",
    "execute_mapping",
    "check_compatible",
]
