"""Mapping errors."""
from typing import Optional


def _type_name(value: Optional[type]) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "__qualname__", repr(value))


class MappingError(Exception):
    """Base class for every error raised by nanomapper.

    Carries the type pair and field the failure relates to, so the
    message is diagnosable without any logging from the engine.
    """

    def __init__(
        self,
        message: str,
        source_type: Optional[type] = None,
        target_type: Optional[type] = None,
        field: Optional[str] = None,
    ):
        self.source_type = source_type
        self.target_type = target_type
        self.field = field
        self.reason = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        context = []
        if self.source_type is not None or self.target_type is not None:
            context.append(
                f"{_type_name(self.source_type) or '?'} -> {_type_name(self.target_type) or '?'}"
            )
        if self.field:
            context.append(f"field '{self.field}'")

        if context:
            return f"{message} [{', '.join(context)}]"
        return message


class InvalidFieldReference(MappingError):
    """A field reference is not a direct, settable member access."""


class TranslationFailure(MappingError):
    """A translation function raised while the mapping was executing."""


class IncompatibleValue(MappingError):
    """A translated value cannot be stored into its target field."""


class ConfigurationNotFound(MappingError):
    """No mapping configuration is registered for a type pair."""
