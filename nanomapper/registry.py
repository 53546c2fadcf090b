"""Registry of mapping configurations, keyed by (source_type, target_type)."""
import logging
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from nanomapper.errors import ConfigurationNotFound
from nanomapper.mapper.configuration import MappingConfiguration, MappingKey

logger = logging.getLogger(__name__)


class MappingRegistry:
    """
    Owns one MappingConfiguration per type pair

    Lookups match the exact (source_type, target_type) key; there is no
    fallback to base classes or to any other registered pair.

    Usage:
    ```python
    registry = MappingRegistry()
    registry.register(User, UserView).field(lambda v: v.name)
    apply_to(user, view, registry)
    ```
    """

    def __init__(self, strict_types: Optional[bool] = None):
        """
        Initialize registry

        Args:
            strict_types: Passed to every configuration this registry creates
        """
        self.strict_types = strict_types
        self._configurations: Dict[MappingKey, MappingConfiguration] = {}

    @property
    def mappings(self) -> Mapping[MappingKey, MappingConfiguration]:
        """Read-only view of the registered configurations."""
        return MappingProxyType(self._configurations)

    def register(self, source_type: type, target_type: type) -> MappingConfiguration:
        """
        Get the configuration for a type pair, creating it on first use

        Returns:
            The single MappingConfiguration owned for this pair
        """
        key = MappingKey(source_type, target_type)
        configuration = self._configurations.get(key)

        if configuration is None:
            configuration = MappingConfiguration(
                source_type, target_type, strict_types=self.strict_types
            )
            self._configurations[key] = configuration
            logger.debug(f"Registered mapping {key}")

        return configuration

    def get(self, source_type: type, target_type: type) -> MappingConfiguration:
        """
        Get the configuration registered for a type pair

        Raises:
            ConfigurationNotFound: If the exact pair was never registered
        """
        key = MappingKey(source_type, target_type)
        try:
            return self._configurations[key]
        except KeyError:
            raise ConfigurationNotFound(
                "No mapping configuration registered",
                source_type=source_type,
                target_type=target_type,
            ) from None

    def remove(self, source_type: type, target_type: type) -> None:
        """Drop the configuration for a type pair, if registered."""
        key = MappingKey(source_type, target_type)
        if self._configurations.pop(key, None) is not None:
            logger.debug(f"Removed mapping {key}")

    def clear(self) -> None:
        self._configurations.clear()

    def __contains__(self, key) -> bool:
        return MappingKey(*key) in self._configurations

    def __len__(self) -> int:
        return len(self._configurations)


# Global instance
global_registry = MappingRegistry()
