"""
nanomapper - Copies field values between unrelated object types

Usage:
```python
from nanomapper import MappingRegistry, apply_to

registry = MappingRegistry()
registry.register(User, UserView).field(lambda v: v.name).field(
    lambda v: v.email, lambda u: u.email.lower()
)
apply_to(user, view, registry)
```
"""

from .errors import (
    MappingError,
    InvalidFieldReference,
    TranslationFailure,
    IncompatibleValue,
    ConfigurationNotFound,
)
from .mapper import FieldIdentifier, MappingConfiguration, MappingKey
from .registry import MappingRegistry, global_registry
from .apply import apply_to

__version__ = "0.1.0"

__all__ = [
    "MappingError",
    "InvalidFieldReference",
    "TranslationFailure",
    "IncompatibleValue",
    "ConfigurationNotFound",
    "FieldIdentifier",
    "MappingConfiguration",
    "MappingKey",
    "MappingRegistry",
    "global_registry",
    "apply_to",
]
