"""
Mapping Execution - Applies a mapping configuration to one (source, target) pair

Each field mapping is translated from the source and written onto the
target. A failing translation or write aborts the run: fields handled
before the failure stay written, later ones are never touched.
"""

import logging
import types
import typing
from typing import TYPE_CHECKING, Any, Literal, Union

from nanomapper.config import app_config
from nanomapper.errors import IncompatibleValue, TranslationFailure

if TYPE_CHECKING:
    from nanomapper.mapper.configuration import MappingConfiguration

logger = logging.getLogger(__name__)

_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)


def check_compatible(value: Any, annotation: Any) -> bool:
    """
    Check whether value can be stored in a field annotated with annotation

    Unknown or unresolvable annotations (strings, TypeVars, protocols
    that are not runtime checkable) accept any value.
    """
    if annotation is None or annotation is Any:
        return True
    if isinstance(annotation, (str, typing.ForwardRef, typing.TypeVar)):
        return True
    if annotation is type(None):
        return value is None

    origin = typing.get_origin(annotation)

    if origin in _UNION_TYPES:
        return any(check_compatible(value, arg) for arg in typing.get_args(annotation))

    if origin is Literal:
        return value in typing.get_args(annotation)

    if origin is not None:
        # Parameterised generics are checked by their origin only
        return isinstance(value, origin) if isinstance(origin, type) else True

    if not isinstance(annotation, type):
        return True

    # int is acceptable where float or complex is expected
    if annotation in (float, complex) and isinstance(value, int) and not isinstance(value, bool):
        return True

    try:
        return isinstance(value, annotation)
    except TypeError:
        # Protocol without @runtime_checkable
        return True


def _strict(configuration: "MappingConfiguration") -> bool:
    if configuration.strict_types is not None:
        return configuration.strict_types
    return app_config.strict_types


def execute_mapping(configuration: "MappingConfiguration", source: Any, target: Any) -> None:
    """
    Write every field of configuration from source onto target

    Args:
        configuration: Field mappings to apply
        source: Instance values are read from
        target: Instance values are written to

    Raises:
        TranslationFailure: If a translation function raises
        IncompatibleValue: If a value cannot be stored in its target field
    """
    strict = _strict(configuration)
    entries = configuration.entries()

    logger.debug(f"Executing {configuration.key} ({len(entries)} fields)")

    for entry in entries:
        field_name = entry.field.name

        try:
            value = entry.translate(source)
        except Exception as e:
            raise TranslationFailure(
                f"Translation raised {type(e).__name__}: {e}",
                source_type=configuration.source_type,
                target_type=configuration.target_type,
                field=field_name,
            ) from e

        if strict and not check_compatible(value, entry.accessor.annotation):
            raise IncompatibleValue(
                f"Value of type {type(value).__name__} does not match {entry.accessor.annotation!r}",
                source_type=configuration.source_type,
                target_type=configuration.target_type,
                field=field_name,
            )

        try:
            entry.accessor.set(target, value)
        except (TypeError, ValueError, AttributeError) as e:
            raise IncompatibleValue(
                f"Target rejected value of type {type(value).__name__}: {e}",
                source_type=configuration.source_type,
                target_type=configuration.target_type,
                field=field_name,
            ) from e
