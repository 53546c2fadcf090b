"""Tests for MappingRegistry."""
from dataclasses import dataclass

import pytest

from nanomapper.errors import ConfigurationNotFound
from nanomapper.mapper.configuration import MappingKey
from nanomapper.registry import MappingRegistry


@dataclass
class Product:
    name: str = ""
    sku: str = ""


@dataclass
class ProductView:
    name: str = ""
    sku: str = ""


@dataclass
class Brand:
    name: str = ""


@dataclass
class BrandView:
    name: str = ""


class SpecialProduct(Product):
    pass


@pytest.fixture
def registry():
    """Isolated registry"""
    return MappingRegistry()


class TestMappingRegistry:
    """Test registration and lookup."""

    def test_register_returns_same_instance(self, registry):
        """Test one configuration per type pair."""
        first = registry.register(Product, ProductView)
        second = registry.register(Product, ProductView)

        assert first is second
        assert len(registry) == 1

    def test_get_registered(self, registry):
        """Test lookup by exact pair."""
        config = registry.register(Product, ProductView)

        assert registry.get(Product, ProductView) is config
        assert (Product, ProductView) in registry

    def test_get_missing(self, registry):
        """Test missing pair raises with context."""
        with pytest.raises(ConfigurationNotFound) as exc_info:
            registry.get(Product, ProductView)

        assert exc_info.value.source_type is Product
        assert exc_info.value.target_type is ProductView
        assert "Product -> ProductView" in str(exc_info.value)

    def test_never_falls_back_to_another_pair(self, registry):
        """Test lookup does not pick whatever is registered."""
        registry.register(Brand, BrandView)

        with pytest.raises(ConfigurationNotFound):
            registry.get(Product, ProductView)

    def test_subclass_is_not_matched(self, registry):
        """Test exact type match only."""
        registry.register(Product, ProductView)

        with pytest.raises(ConfigurationNotFound):
            registry.get(SpecialProduct, ProductView)

    def test_pairs_do_not_share_state(self, registry):
        """Test independent configurations."""
        products = registry.register(Product, ProductView).field("name").field("sku")
        brands = registry.register(Brand, BrandView).field("name")

        products.ignore("name")

        assert [f.name for f in products.fields] == ["sku"]
        assert [f.name for f in brands.fields] == ["name"]

    def test_remove_and_clear(self, registry):
        """Test removal."""
        registry.register(Product, ProductView)
        registry.register(Brand, BrandView)

        registry.remove(Product, ProductView)
        registry.remove(Product, ProductView)

        assert (Product, ProductView) not in registry
        assert len(registry) == 1

        registry.clear()
        assert len(registry) == 0

    def test_mappings_view_is_read_only(self, registry):
        """Test mappings cannot be mutated directly."""
        config = registry.register(Product, ProductView)

        assert registry.mappings[MappingKey(Product, ProductView)] is config
        with pytest.raises(TypeError):
            registry.mappings[MappingKey(Brand, BrandView)] = config

    def test_strict_types_passed_to_configurations(self):
        """Test registry-level strict_types."""
        registry = MappingRegistry(strict_types=False)

        assert registry.register(Product, ProductView).strict_types is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
