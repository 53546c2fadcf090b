"""
Field Selector - Resolves field references on a target type

A field reference is either:
- a one-argument callable doing a single attribute access (lambda t: t.email)
- a plain attribute name ("email")

Anything else (nested access, method calls, indexing, arithmetic,
boolean operators, conditionals, constants) is rejected with
InvalidFieldReference when the reference is resolved, never later when
the mapping executes.

Members of a type are its annotations, dataclass fields, __slots__,
properties and the attributes its __init__ assigns on self. Attributes
set anywhere else are only accepted on types that declare none of these.
"""

import ast
import dataclasses
import dis
import functools
import inspect
import linecache
import logging
import types
import typing
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Dict, List, Optional, Set, Union

from nanomapper.errors import InvalidFieldReference

logger = logging.getLogger(__name__)

FieldReference = Union[str, Callable[[Any], Any]]


@dataclass(frozen=True)
class FieldIdentifier:
    """Identifies one settable member of a target type."""

    owner: type
    name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.owner.__qualname__}.{self.name}"

    def __str__(self) -> str:
        return self.qualified_name


class FieldAccessor:
    """Get/set capability pair for one declared field.

    Built once when the field is declared, so execution never has to look
    the member up again.
    """

    __slots__ = ("field", "annotation", "get", "_name")

    def __init__(self, field: FieldIdentifier, annotation: Any = None):
        self.field = field
        self.annotation = annotation
        self.get = attrgetter(field.name)
        self._name = field.name

    def set(self, instance: Any, value: Any) -> None:
        setattr(instance, self._name, value)

    def __repr__(self) -> str:
        return f"FieldAccessor({self.field.qualified_name})"


_SKIPPED_OPS = frozenset({"RESUME", "NOP", "CACHE", "EXTENDED_ARG", "COPY_FREE_VARS", "MAKE_CELL"})
_LOAD_ARG_OPS = frozenset({"LOAD_FAST", "LOAD_FAST_CHECK", "LOAD_FAST_BORROW"})


@functools.lru_cache(maxsize=64)
def _parse_file(filename: str) -> Optional[ast.Module]:
    lines = linecache.getlines(filename)
    if not lines:
        return None
    try:
        return ast.parse("".join(lines), filename)
    except (SyntaxError, ValueError) as e:
        logger.debug(f"Could not parse {filename}: {e}")
        return None


def _positional_args(node: ast.AST) -> List[str]:
    return [a.arg for a in node.args.posonlyargs + node.args.args]


def _source_node(code: types.CodeType, position: Any = None) -> Optional[ast.AST]:
    """
    Find the lambda or def a code object was compiled from

    Returns None when the source is unavailable (exec, REPL) or the
    definition cannot be told apart from others on the same line.
    """
    tree = _parse_file(code.co_filename)
    if tree is None:
        return None

    arg_names = list(code.co_varnames[:code.co_argcount])
    is_lambda = code.co_name == "<lambda>"
    candidates = []

    for node in ast.walk(tree):
        if is_lambda and isinstance(node, ast.Lambda):
            first_line = node.lineno
        elif not is_lambda and isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            if node.name != code.co_name:
                continue
            first_line = min([node.lineno] + [d.lineno for d in node.decorator_list])
        else:
            continue

        if first_line == code.co_firstlineno and _positional_args(node) == arg_names:
            candidates.append(node)

    if len(candidates) > 1 and position is not None and None not in (position.lineno, position.col_offset):
        point = (position.lineno, position.col_offset)
        candidates = [
            node for node in candidates
            if (node.lineno, node.col_offset) <= point <= (node.end_lineno, node.end_col_offset)
        ]
        # Innermost definition wins
        candidates.sort(key=lambda node: (node.lineno, node.col_offset), reverse=True)
        candidates = candidates[:1]

    return candidates[0] if len(candidates) == 1 else None


def _is_direct_access(node: ast.AST) -> bool:
    if isinstance(node, ast.Lambda):
        body = node.body
    else:
        statements = [
            s for s in node.body
            if not (isinstance(s, ast.Expr) and isinstance(s.value, ast.Constant))
        ]
        if len(statements) != 1 or not isinstance(statements[0], ast.Return):
            return False
        body = statements[0].value

    return (
        isinstance(body, ast.Attribute)
        and isinstance(body.value, ast.Name)
        and body.value.id == _positional_args(node)[0]
    )


def _member_name_from_code(code: types.CodeType) -> str:
    """
    Read the member name from the compiled reference

    The body must compile to exactly: load argument, load attribute,
    return. When the source is available it must also read as a single
    attribute access, which catches expressions the compiler folded away
    (v.name if True else "x").
    """
    if (
        code.co_argcount != 1
        or code.co_kwonlyargcount
        or code.co_flags & (inspect.CO_VARARGS | inspect.CO_VARKEYWORDS)
    ):
        raise InvalidFieldReference("Field reference must take exactly one argument")

    instructions = [i for i in dis.get_instructions(code) if i.opname not in _SKIPPED_OPS]
    if not (
        len(instructions) == 3
        and instructions[0].opname in _LOAD_ARG_OPS
        and instructions[0].argval == code.co_varnames[0]
        and instructions[1].opname == "LOAD_ATTR"
        and instructions[2].opname == "RETURN_VALUE"
    ):
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, "
            f"compiled to {' '.join(i.opname for i in instructions)}"
        )

    node = _source_node(code, getattr(instructions[1], "positions", None))
    if node is not None and not _is_direct_access(node):
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, "
            f"line {node.lineno} is a computed expression"
        )

    return instructions[1].argval


class _MemberAccess:
    """Result of an attribute access recorded by a _Recorder."""

    __slots__ = ("parent", "name")

    def __init__(self, parent: Any, name: str):
        self.parent = parent
        self.name = name

    def __getattr__(self, name: str) -> "_MemberAccess":
        # Chained access; rejected later because the parent is not the recorder
        return _MemberAccess(self, name)

    def _used_in_expression(self, *args):
        raise InvalidFieldReference(
            f"'{self.name}' is used in an expression, not a direct member access"
        )

    __bool__ = _used_in_expression
    __iter__ = _used_in_expression
    __len__ = _used_in_expression


class _Recorder:
    """Stand-in target instance that records every attribute access."""

    __slots__ = ("_accesses",)

    def __init__(self):
        object.__setattr__(self, "_accesses", [])

    def __getattribute__(self, name: str) -> _MemberAccess:
        access = _MemberAccess(self, name)
        object.__getattribute__(self, "_accesses").append(access)
        return access


def _member_name_from_recording(reference: Callable[[Any], Any]) -> str:
    """Resolve callables without a code object (attrgetter, callable instances)."""
    recorder = _Recorder()
    try:
        result = reference(recorder)
    except InvalidFieldReference:
        raise
    except Exception as e:
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, evaluation failed: {e}"
        ) from e

    accesses = object.__getattribute__(recorder, "_accesses")

    if not isinstance(result, _MemberAccess):
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, got {type(result).__name__}"
        )
    if result.parent is not recorder:
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, '{result.name}' is nested"
        )
    if len(accesses) != 1 or accesses[0] is not result:
        raise InvalidFieldReference(
            f"Field reference must be a direct member access, "
            f"{len(accesses)} members were read"
        )

    return result.name


def _member_name_from_callable(reference: Callable[[Any], Any]) -> str:
    code = getattr(reference, "__code__", None)
    if isinstance(code, types.CodeType):
        return _member_name_from_code(code)
    return _member_name_from_recording(reference)


def _is_class_var(hint: Any) -> bool:
    if isinstance(hint, str):
        return hint.startswith(("ClassVar", "typing.ClassVar"))
    return typing.get_origin(hint) is typing.ClassVar


def _annotations(owner: type) -> Dict[str, Any]:
    try:
        hints = typing.get_type_hints(owner)
    except Exception as e:
        # Unresolvable forward references; fall back to the raw annotations
        logger.debug(f"Could not resolve type hints for {owner.__qualname__}: {e}")
        hints = {}
        for cls in reversed(owner.__mro__):
            hints.update(cls.__dict__.get("__annotations__", {}))

    return {name: hint for name, hint in hints.items() if not _is_class_var(hint)}


def _structural_members(owner: type) -> Dict[str, Any]:
    members: Dict[str, Any] = {}

    for cls in reversed(owner.__mro__):
        if cls is object:
            continue
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot not in ("__dict__", "__weakref__"):
                members.setdefault(slot, None)

    if dataclasses.is_dataclass(owner):
        for dc_field in dataclasses.fields(owner):
            members.setdefault(dc_field.name, None)

    members.update(_annotations(owner))
    return members


def declared_members(owner: type) -> Dict[str, Any]:
    """
    Collect the members a type declares, with their annotation

    Sources: type hints, dataclass fields, __slots__ and properties.
    Members without an annotation map to None.

    Returns:
        Dict of {member_name: annotation}
    """
    members = _structural_members(owner)

    for name, prop in _properties(owner).items():
        annotation = None
        if prop.fget is not None:
            try:
                annotation = typing.get_type_hints(prop.fget).get("return")
            except Exception as e:
                logger.debug(f"Could not resolve return hint of {owner.__qualname__}.{name}: {e}")
        members[name] = annotation

    return members


def _properties(owner: type) -> Dict[str, property]:
    found: Dict[str, property] = {}
    for cls in reversed(owner.__mro__):
        for name, attr in cls.__dict__.items():
            if isinstance(attr, property):
                found[name] = attr
    return found


def resolve_field(
    reference: FieldReference,
    target_type: type,
    source_type: Optional[type] = None,
) -> FieldIdentifier:
    """
    Resolve a field reference to a FieldIdentifier on target_type

    Args:
        reference: Attribute name or callable doing one attribute access
        target_type: Type the field is declared on
        source_type: Only used to give errors their type pair context

    Returns:
        FieldIdentifier for the referenced member

    Raises:
        InvalidFieldReference: If the reference is not a direct access to
            a settable member of target_type
    """
    try:
        if isinstance(reference, str):
            name = reference
        elif callable(reference):
            name = _member_name_from_callable(reference)
        else:
            raise InvalidFieldReference(
                f"Field reference must be a member name or a callable, got {type(reference).__name__}"
            )

        if not name.isidentifier() or name.startswith("__"):
            raise InvalidFieldReference(f"'{name}' is not a valid field name", field=name)

        _check_settable(name, target_type)

    except InvalidFieldReference as e:
        if e.target_type is not None:
            raise
        raise InvalidFieldReference(
            e.reason, source_type=source_type, target_type=target_type, field=e.field
        ) from e.__cause__

    return FieldIdentifier(target_type, name)


def _assigned_names(target: ast.AST, self_name: str) -> Set[str]:
    if isinstance(target, ast.Attribute):
        if isinstance(target.value, ast.Name) and target.value.id == self_name:
            return {target.attr}
        return set()
    if isinstance(target, (ast.Tuple, ast.List)):
        return set().union(*(_assigned_names(elt, self_name) for elt in target.elts))
    if isinstance(target, ast.Starred):
        return _assigned_names(target.value, self_name)
    return set()


def _init_attributes(owner: type) -> Set[str]:
    """
    Attributes assigned on self in __init__ along the MRO

    Needs the source of __init__; generated initializers (dataclasses)
    and code without source contribute nothing.
    """
    names: Set[str] = set()

    for cls in owner.__mro__:
        code = getattr(cls.__dict__.get("__init__"), "__code__", None)
        if not isinstance(code, types.CodeType) or code.co_argcount < 1:
            continue
        node = _source_node(code)
        if node is None:
            continue

        self_name = code.co_varnames[0]
        for child in ast.walk(node):
            if isinstance(child, ast.Assign):
                targets = child.targets
            elif isinstance(child, (ast.AnnAssign, ast.AugAssign)):
                targets = [child.target]
            else:
                continue
            for target in targets:
                names |= _assigned_names(target, self_name)

    return names


def _check_settable(name: str, target_type: type) -> None:
    # Types without annotations, slots or dataclass fields accept any name
    structural = _structural_members(target_type)
    prop = _properties(target_type).get(name)

    if (
        structural
        and prop is None
        and name not in structural
        and name not in _init_attributes(target_type)
    ):
        raise InvalidFieldReference(
            f"{target_type.__qualname__} has no member '{name}'", field=name
        )

    if prop is not None and prop.fset is None:
        raise InvalidFieldReference(f"Property '{name}' has no setter", field=name)

    params = getattr(target_type, "__dataclass_params__", None)
    if params is not None and params.frozen:
        raise InvalidFieldReference(
            f"{target_type.__qualname__} is a frozen dataclass", field=name
        )


def has_member(owner: type, name: str) -> Optional[bool]:
    """Whether owner declares name; None when owner declares no shape."""
    if name in _properties(owner):
        return True
    structural = _structural_members(owner)
    if not structural:
        return None
    return name in structural or name in _init_attributes(owner)


def build_accessor(field: FieldIdentifier) -> FieldAccessor:
    """Build the get/set capability pair for a resolved field."""
    annotation = declared_members(field.owner).get(field.name)
    return FieldAccessor(field, annotation)
