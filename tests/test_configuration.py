"""
Unit tests for MappingConfiguration

Tests:
- field(): default declaration, override, re-declaration
- ignore(): removal and re-adding
- Introspection: fields, len, contains, to_dict
"""

import logging
from dataclasses import dataclass

import pytest

from nanomapper.errors import InvalidFieldReference
from nanomapper.mapper.configuration import MappingConfiguration, MappingKey
from nanomapper.mapper.selector import FieldIdentifier


# ============================================================================
# SHAPES
# ============================================================================


@dataclass
class Customer:
    name: str = ""
    email: str = ""
    first: str = ""
    last: str = ""


@dataclass
class CustomerView:
    name: str = ""
    email: str = ""
    display_name: str = ""


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def config():
    """Empty configuration for Customer -> CustomerView"""
    return MappingConfiguration(Customer, CustomerView)


def _translation_for(config, name):
    for entry in config.entries():
        if entry.field.name == name:
            return entry
    return None


# ============================================================================
# TEST: field()
# ============================================================================


class TestDeclareField:
    """Tests for MappingConfiguration.field"""

    def test_directives_chain(self, config):
        """Test every directive returns the configuration"""
        result = config.field(lambda v: v.name).field("email").ignore("email")

        assert result is config

    def test_default_translation_reads_same_name(self, config):
        """Test default entry copies the same-named source field"""
        config.field(lambda v: v.name)
        entry = _translation_for(config, "name")

        assert entry.is_default
        assert entry.translate(Customer(name="Ana")) == "Ana"

    def test_redeclare_without_translation_keeps_custom(self, config):
        """Test re-declaring is a no-op when an entry exists"""
        upper = lambda c: c.name.upper()
        config.field(lambda v: v.name, upper)
        config.field(lambda v: v.name)

        entry = _translation_for(config, "name")
        assert entry.translate is upper
        assert not entry.is_default

    def test_explicit_translation_replaces(self, config):
        """Test last write wins"""
        config.field(lambda v: v.name, lambda c: "first")
        config.field(lambda v: v.name, lambda c: "second")

        assert len(config) == 1
        assert _translation_for(config, "name").translate(Customer()) == "second"

    def test_explicit_translation_replaces_default(self, config):
        """Test override of a default declaration"""
        config.field("display_name")
        config.field("display_name", lambda c: f"{c.first} {c.last}")

        entry = _translation_for(config, "display_name")
        assert entry.translate(Customer(first="Ana", last="Lima")) == "Ana Lima"

    def test_non_callable_translation(self, config):
        """Test translation must be callable"""
        with pytest.raises(InvalidFieldReference, match="callable"):
            config.field(lambda v: v.name, "Ana")

    def test_invalid_reference_fails_at_configuration_time(self, config):
        """Test computed expression is rejected by field()"""
        with pytest.raises(InvalidFieldReference) as exc_info:
            config.field(lambda v: v.name + v.email, lambda c: c.name)

        assert exc_info.value.source_type is Customer
        assert exc_info.value.target_type is CustomerView
        assert len(config) == 0

    def test_warns_when_source_lacks_field(self, config, caplog):
        """Test default declaration for a field the source does not declare"""
        with caplog.at_level(logging.WARNING, logger="nanomapper"):
            config.field("display_name")

        assert "source has no member 'display_name'" in caplog.text
        assert "display_name" in [f.name for f in config.fields]


# ============================================================================
# TEST: ignore()
# ============================================================================


class TestIgnore:
    """Tests for MappingConfiguration.ignore"""

    def test_ignore_removes_entry(self, config):
        """Test ignored field is no longer mapped"""
        config.field("name").field("email").ignore(lambda v: v.email)

        assert [f.name for f in config.fields] == ["name"]

    def test_ignore_unknown_is_noop(self, config):
        """Test ignoring an undeclared field"""
        config.ignore(lambda v: v.email)

        assert len(config) == 0

    def test_readd_after_ignore(self, config):
        """Test fresh entry after ignore"""
        config.field("name", lambda c: "custom").ignore("name").field("name")

        entry = _translation_for(config, "name")
        assert entry.is_default

    def test_ignore_invalid_reference(self, config):
        """Test ignore also validates the reference"""
        with pytest.raises(InvalidFieldReference):
            config.ignore(lambda v: v.name.strip())


# ============================================================================
# TEST: introspection
# ============================================================================


class TestIntrospection:
    """Tests for key, fields, contains and to_dict"""

    def test_key(self, config):
        """Test registry key"""
        assert config.key == MappingKey(Customer, CustomerView)
        assert str(config.key) == "Customer -> CustomerView"

    def test_contains(self, config):
        """Test membership by reference or identifier"""
        config.field("name")

        assert "name" in config
        assert (lambda v: v.name) in config
        assert FieldIdentifier(CustomerView, "name") in config
        assert "email" not in config

    def test_to_dict(self, config):
        """Test dictionary description"""
        config.field("name").field("email", str.lower)

        data = config.to_dict()

        assert data["source_type"] == "Customer"
        assert data["target_type"] == "CustomerView"
        assert data["fields"] == [
            {"field": "name", "translation": "default", "translate": None},
            {"field": "email", "translation": "custom", "translate": "str.lower"},
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
