"""Entry point: apply_to(source, target, ...)."""
import logging
from typing import Any, Callable, Optional, Union

from nanomapper.mapper.configuration import MappingConfiguration
from nanomapper.registry import MappingRegistry, global_registry

logger = logging.getLogger(__name__)

Override = Callable[[MappingConfiguration], Any]


def apply_to(
    source: Any,
    target: Any,
    registry: Union[MappingRegistry, Override, None] = None,
    override: Optional[Override] = None,
) -> Any:
    """
    Apply the registered mapping for (type(source), type(target))

    Supported forms:
        apply_to(source, target)
        apply_to(source, target, override)
        apply_to(source, target, registry)
        apply_to(source, target, registry, override)

    The override receives the registered configuration and may call
    field()/ignore() on it before execution. It mutates the shared
    configuration in place, so its changes outlive this call.

    Returns:
        target

    Raises:
        ConfigurationNotFound: If no configuration exists for the type pair
        InvalidFieldReference: If the override declares an invalid field
        TranslationFailure: If a translation function raises
        IncompatibleValue: If a value cannot be stored in its target field
    """
    if registry is not None and not isinstance(registry, MappingRegistry):
        if not callable(registry):
            raise TypeError(
                f"Expected a MappingRegistry or an override callable, got {type(registry).__name__}"
            )
        if override is not None:
            raise TypeError("registry must be a MappingRegistry when override is given")
        registry, override = None, registry

    if registry is None:
        registry = global_registry

    configuration = registry.get(type(source), type(target))

    if override is not None:
        logger.debug(f"Applying per-call override to {configuration.key}")
        override(configuration)

    configuration.execute(source, target)
    return target
