"""
Mapping Configuration - Field-level directives for one (source, target) type pair

Usage:
```python
config = MappingConfiguration(UserModel, UserView)
(
    config.field(lambda v: v.name)
          .field(lambda v: v.display_name, lambda u: f"{u.first} {u.last}")
          .ignore(lambda v: v.password_hash)
)
config.execute(user, view)
```
"""

import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Union

from nanomapper.errors import InvalidFieldReference
from nanomapper.mapper.execution import execute_mapping
from nanomapper.mapper.selector import (
    FieldAccessor,
    FieldIdentifier,
    FieldReference,
    build_accessor,
    has_member,
    resolve_field,
)

logger = logging.getLogger(__name__)


class MappingKey(NamedTuple):
    """Registry key of a mapping configuration."""

    source_type: type
    target_type: type

    def __str__(self) -> str:
        return f"{self.source_type.__qualname__} -> {self.target_type.__qualname__}"


@dataclass
class FieldMapping:
    """One active entry: where to write, and how to compute the value"""

    accessor: FieldAccessor
    translate: Callable[[Any], Any]
    is_default: bool = False

    @property
    def field(self) -> FieldIdentifier:
        return self.accessor.field

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "field": self.field.name,
            "translation": "default" if self.is_default else "custom",
            "translate": None if self.is_default else getattr(self.translate, "__qualname__", repr(self.translate)),
        }


class MappingConfiguration:
    """
    Set of field mappings for one (source_type, target_type) pair

    At most one translation is kept per field; declaring a field again
    with a translation replaces it. Only declared fields are ever written.
    All directives return the configuration itself for chaining.

    Args:
        source_type: Type of the instances values are read from
        target_type: Type of the instances values are written to
        strict_types: Check values against target annotations on execute.
            None defers to app_config.strict_types.
    """

    def __init__(
        self,
        source_type: type,
        target_type: type,
        strict_types: Optional[bool] = None,
    ):
        self.source_type = source_type
        self.target_type = target_type
        self.strict_types = strict_types
        self._mappings: Dict[FieldIdentifier, FieldMapping] = {}

    @property
    def key(self) -> MappingKey:
        return MappingKey(self.source_type, self.target_type)

    @property
    def fields(self) -> List[FieldIdentifier]:
        return list(self._mappings)

    def entries(self) -> List[FieldMapping]:
        """Snapshot of the active field mappings."""
        return list(self._mappings.values())

    def field(
        self,
        reference: FieldReference,
        translate: Optional[Callable[[Any], Any]] = None,
    ) -> "MappingConfiguration":
        """
        Declare a target field as part of the mapping

        Without a translation, the field copies the same-named attribute
        from the source; an existing translation is left untouched.
        With a translation, it replaces whatever was there.

        Args:
            reference: Target field (lambda t: t.email or "email")
            translate: Function of the source instance producing the value

        Raises:
            InvalidFieldReference: If the reference is not a direct member
                access, or translate is not callable
        """
        identifier = self._resolve(reference)

        if translate is None:
            if identifier in self._mappings:
                logger.debug(f"{self.key}: '{identifier.name}' already declared, keeping translation")
                return self

            if has_member(self.source_type, identifier.name) is False:
                logger.warning(
                    f"{self.key}: source has no member '{identifier.name}', "
                    f"default translation will fail on execute"
                )

            self._mappings[identifier] = FieldMapping(
                build_accessor(identifier), attrgetter(identifier.name), is_default=True
            )
            logger.debug(f"{self.key}: declared '{identifier.name}' (default)")
            return self

        if not callable(translate):
            raise InvalidFieldReference(
                f"Translation must be callable, got {type(translate).__name__}",
                source_type=self.source_type,
                target_type=self.target_type,
                field=identifier.name,
            )

        existing = self._mappings.get(identifier)
        accessor = existing.accessor if existing else build_accessor(identifier)
        self._mappings[identifier] = FieldMapping(accessor, translate)
        logger.debug(
            f"{self.key}: {'replaced' if existing else 'declared'} '{identifier.name}' (custom)"
        )
        return self

    def ignore(self, reference: FieldReference) -> "MappingConfiguration":
        """Remove a field from the mapping. Unknown fields are a no-op."""
        identifier = self._resolve(reference)

        if self._mappings.pop(identifier, None) is not None:
            logger.debug(f"{self.key}: ignoring '{identifier.name}'")

        return self

    def execute(self, source: Any, target: Any) -> None:
        """Apply every field mapping from source onto target."""
        execute_mapping(self, source, target)

    def _resolve(self, reference: FieldReference) -> FieldIdentifier:
        return resolve_field(reference, self.target_type, self.source_type)

    def __contains__(self, reference: Union[FieldIdentifier, FieldReference]) -> bool:
        if isinstance(reference, FieldIdentifier):
            return reference in self._mappings
        return self._resolve(reference) in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def __repr__(self) -> str:
        return f"MappingConfiguration({self.key}, fields={[f.name for f in self._mappings]})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "source_type": self.source_type.__qualname__,
            "target_type": self.target_type.__qualname__,
            "fields": [mapping.to_dict() for mapping in self._mappings.values()],
        }
