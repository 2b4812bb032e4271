"""
Generic alias resolver.

Canonical entities are described declaratively: each canonical field has a
kind, an ordered list of source paths (aliases) and a default. ``resolve``
walks the sources in order and takes the first value that is present, not
None and coercible to the field kind.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple, Union


class _Missing:
    """Marker for "no usable value at this source"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

Transform = Callable[[Any, Mapping[str, Any]], Any]


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    LIST = "list"
    ANY = "any"


KIND_DEFAULTS: Dict[FieldKind, Callable[[], Any]] = {
    FieldKind.STRING: lambda: "",
    FieldKind.NUMBER: lambda: 0.0,
    FieldKind.INTEGER: lambda: 0,
    FieldKind.BOOLEAN: lambda: False,
    FieldKind.LIST: list,
    FieldKind.ANY: lambda: None,
}


@dataclass(frozen=True)
class Alias:
    """
    One source for a canonical field.

    ``path`` is a dotted path into the raw record (``"user.name"``,
    ``"service_categories.0.name"``). ``value_map`` translates raw values
    (e.g. ``PERCENTAGE`` to ``percentage``); a value missing from the map
    counts as unmatched. ``transform`` receives the value and the whole record
    and may return ``MISSING``.
    """
    path: str
    value_map: Optional[Mapping[Any, Any]] = None
    transform: Optional[Transform] = None


Source = Union[str, Alias]


@dataclass(frozen=True)
class FieldRule:
    """Declarative rule for a single canonical field."""
    name: str
    kind: FieldKind = FieldKind.STRING
    aliases: Tuple[Alias, ...] = ()
    default: Any = MISSING
    lowercase: bool = False
    choices: Optional[FrozenSet[Any]] = None
    canonical_first: bool = True

    def sources(self) -> Tuple[Alias, ...]:
        if self.canonical_first:
            return (Alias(self.name),) + self.aliases
        return self.aliases

    def default_value(self) -> Any:
        if self.default is MISSING:
            return KIND_DEFAULTS[self.kind]()
        if isinstance(self.default, list):
            return list(self.default)
        return self.default


def _as_alias(source: Source) -> Alias:
    return source if isinstance(source, Alias) else Alias(source)


def rule(
    name: str,
    *aliases: Source,
    kind: FieldKind = FieldKind.STRING,
    default: Any = MISSING,
    lowercase: bool = False,
    choices: Optional[Iterable[Any]] = None,
    canonical_first: bool = True,
) -> FieldRule:
    """Build a :class:`FieldRule`; aliases may be plain dotted paths."""
    return FieldRule(
        name=name,
        kind=kind,
        aliases=tuple(_as_alias(alias) for alias in aliases),
        default=default,
        lowercase=lowercase,
        choices=frozenset(choices) if choices is not None else None,
        canonical_first=canonical_first,
    )


def text(name: str, *aliases: Source, **options: Any) -> FieldRule:
    return rule(name, *aliases, kind=FieldKind.STRING, **options)


def number(name: str, *aliases: Source, **options: Any) -> FieldRule:
    return rule(name, *aliases, kind=FieldKind.NUMBER, **options)


def integer(name: str, *aliases: Source, **options: Any) -> FieldRule:
    return rule(name, *aliases, kind=FieldKind.INTEGER, **options)


def flag(name: str, *aliases: Source, **options: Any) -> FieldRule:
    return rule(name, *aliases, kind=FieldKind.BOOLEAN, **options)


def listing(name: str, *aliases: Source, **options: Any) -> FieldRule:
    return rule(name, *aliases, kind=FieldKind.LIST, **options)


def status(
    name: str = "status",
    *aliases: Source,
    default: str = "inactive",
    flag_field: str = "is_active",
    choices: Optional[Iterable[str]] = None,
) -> FieldRule:
    """
    Status rule: explicit string status (lowercased) wins, then the boolean
    ``flag_field`` (``True``/``"true"`` means active), then ``default``.
    """
    return rule(
        name,
        *aliases,
        Alias(flag_field, transform=status_from_flag),
        kind=FieldKind.STRING,
        default=default,
        lowercase=True,
        choices=choices,
    )


# ----------------------------------------------------------------------
# Lookup and coercion
# ----------------------------------------------------------------------

def lookup_path(raw: Any, path: str) -> Any:
    """Follow a dotted path through mappings and sequences."""
    current = raw
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def parse_bool(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return MISSING
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return MISSING


def parse_number(value: Any) -> Any:
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return MISSING
    else:
        return MISSING
    if math.isnan(result) or math.isinf(result):
        return MISSING
    return result


def coerce(value: Any, kind: FieldKind) -> Any:
    """Coerce a raw value to a field kind, or return MISSING."""
    if kind == FieldKind.ANY:
        return value
    if kind == FieldKind.STRING:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return MISSING
        if isinstance(value, (int, float)):
            if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
                return MISSING
            return str(value)
        return MISSING
    if kind == FieldKind.NUMBER:
        return parse_number(value)
    if kind == FieldKind.INTEGER:
        result = parse_number(value)
        return int(result) if result is not MISSING else MISSING
    if kind == FieldKind.BOOLEAN:
        return parse_bool(value)
    if kind == FieldKind.LIST:
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return MISSING
    return MISSING


def _apply_source(raw: Mapping[str, Any], alias: Alias, rule: FieldRule) -> Any:
    value = lookup_path(raw, alias.path)
    if value is MISSING or value is None:
        return MISSING
    if alias.transform is not None:
        value = alias.transform(value, raw)
        if value is MISSING or value is None:
            return MISSING
    if alias.value_map is not None:
        key = value.upper() if isinstance(value, str) else value
        if key not in alias.value_map:
            return MISSING
        value = alias.value_map[key]
    value = coerce(value, rule.kind)
    if value is MISSING:
        return MISSING
    if rule.lowercase and isinstance(value, str):
        value = value.lower()
    if rule.choices is not None and value not in rule.choices:
        return MISSING
    return value


def resolve_field(raw: Mapping[str, Any], rule: FieldRule) -> Any:
    """Resolve one canonical field from a raw record."""
    for alias in rule.sources():
        value = _apply_source(raw, alias, rule)
        if value is not MISSING:
            return value
    return rule.default_value()


def resolve(raw: Mapping[str, Any], rules: Sequence[FieldRule]) -> Dict[str, Any]:
    """Resolve every canonical field of a table."""
    return {field_rule.name: resolve_field(raw, field_rule) for field_rule in rules}


# ----------------------------------------------------------------------
# Shared transforms
# ----------------------------------------------------------------------

def status_from_flag(value: Any, raw: Mapping[str, Any]) -> Any:
    parsed = parse_bool(value)
    if parsed is MISSING:
        return MISSING
    return "active" if parsed else "inactive"


def relation_name(value: Any, raw: Mapping[str, Any]) -> Any:
    """A relation given either as its name or as ``{id, name}``."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        name = value.get("name")
        return name if isinstance(name, str) else MISSING
    return MISSING


def nested_total(field_name: str) -> Transform:
    """A number given either directly or as ``{field_name: number}``."""
    def _transform(value: Any, raw: Mapping[str, Any]) -> Any:
        if isinstance(value, Mapping):
            return value.get(field_name, MISSING)
        return value
    return _transform


def first_named(value: Any, raw: Mapping[str, Any]) -> Any:
    """Name of the first entry in a list of ``{name}`` objects."""
    if isinstance(value, (list, tuple)) and value:
        return relation_name(value[0], raw)
    return MISSING


def names_of(value: Any, raw: Mapping[str, Any]) -> Any:
    """A list of strings or of ``{name}`` objects, as plain names."""
    if not isinstance(value, (list, tuple)):
        return MISSING
    names = []
    for item in value:
        name = relation_name(item, raw)
        if name is not MISSING:
            names.append(name)
    return names


@dataclass
class AliasTable:
    """Alias table for one resource."""
    resource: str
    rules: Tuple[FieldRule, ...]
    derived: Dict[str, Callable[[Dict[str, Any]], Any]] = field(default_factory=dict)

    def field_names(self) -> Tuple[str, ...]:
        return tuple(field_rule.name for field_rule in self.rules) + tuple(self.derived)

    def apply(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Resolve all fields, then compute fields derived from canonical values."""
        values = resolve(raw, self.rules)
        for name, derive in self.derived.items():
            values[name] = derive(values)
        return values
