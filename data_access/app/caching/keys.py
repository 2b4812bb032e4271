"""
Request key builder for the query cache.

A query key is a hashable tuple ``(resource, (name, value), ...)``. Parameters
are kept as name/value pairs so two different filters carrying the same value
never produce the same key.
"""

from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple, Union

QueryKey = Tuple[Any, ...]
KeyTarget = Union[str, QueryKey]

ALL_SENTINEL = "all"

# Fixed parameter order per resource. Parameters outside these lists are
# appended in sorted-name order.
KEY_PARAM_ORDER: Dict[str, Tuple[str, ...]] = {
    "coupons": ("page", "limit", "status", "search"),
    "bookings": ("page", "limit", "status", "payment_status", "start_date", "end_date", "search", "category_id"),
    "providers": ("page", "limit", "status", "search", "kyc_status", "category_id"),
    "banners": ("page", "limit", "status", "search", "banner_type", "category_id"),
    "sub-banners": ("page", "limit", "status", "search", "category_id"),
    "mep-banners": ("page", "limit", "status", "search", "banner_type"),
    "categories": ("page", "limit", "status", "search"),
    "services": ("page", "limit", "status", "search", "category_id"),
    "sub-services": ("page", "limit", "status", "search", "service_id", "category_id"),
    "add-ons": ("page", "limit", "status", "search", "service_id"),
    "roles": ("page", "limit", "status", "search"),
    "users": ("page", "limit", "status", "search"),
    "templates": ("channel", "search"),
    "payments": ("page", "limit", "status", "gateway", "start_date", "end_date", "search"),
    "payouts": ("page", "limit", "status", "search"),
    "projects": ("page", "limit", "status", "search"),
    "project-items": ("page", "limit", "status", "search", "project_id"),
    "items": ("page", "limit", "status", "search", "project_item_id"),
}


# Enum filters whose "all" option means no filter. Free-text parameters such
# as ``search`` never collapse.
DEFAULT_SENTINEL_PARAMS: FrozenSet[str] = frozenset({"status"})

SENTINEL_PARAMS: Dict[str, FrozenSet[str]] = {
    "bookings": frozenset({"status", "payment_status", "category_id"}),
    "providers": frozenset({"status", "kyc_status", "category_id"}),
    "services": frozenset({"status", "category_id"}),
    "sub-services": frozenset({"status", "service_id", "category_id"}),
    "add-ons": frozenset({"status", "service_id"}),
    "payments": frozenset({"status", "gateway"}),
    "banners": frozenset({"status", "banner_type", "category_id"}),
    "sub-banners": frozenset({"status", "category_id"}),
    "mep-banners": frozenset({"status", "banner_type"}),
    "templates": frozenset({"channel"}),
    "project-items": frozenset({"status", "project_id"}),
    "items": frozenset({"status", "project_item_id"}),
    "system-logs": frozenset({"level", "service"}),
}


def register_key_order(resource: str, names: Sequence[str]) -> None:
    """Register (or replace) the parameter order used for a resource's keys."""
    KEY_PARAM_ORDER[resource] = tuple(names)


def register_sentinel_params(resource: str, names: Iterable[str]) -> None:
    """Register the filters of a resource for which "all" means no filter."""
    SENTINEL_PARAMS[resource] = frozenset(names)


def sentinel_params(resource: Optional[str]) -> FrozenSet[str]:
    if resource is None:
        return DEFAULT_SENTINEL_PARAMS
    return SENTINEL_PARAMS.get(resource, DEFAULT_SENTINEL_PARAMS)


def is_empty_param(value: Any) -> bool:
    """Return True for None and blank strings."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def is_unset_param(resource: Optional[str], name: str, value: Any) -> bool:
    """Return True when ``name=value`` is equivalent to omitting the parameter."""
    if is_empty_param(value):
        return True
    return value == ALL_SENTINEL and name in sentinel_params(resource)


def freeze(value: Any) -> Any:
    """Convert a parameter value into a hashable, deep-comparable form."""
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((freeze(v) for v in value), key=repr))
    return value


def _ordered_names(resource: str, params: Mapping[str, Any]) -> Iterable[str]:
    order = KEY_PARAM_ORDER.get(resource, ())
    for name in order:
        if name in params:
            yield name
    for name in sorted(n for n in params if n not in order):
        yield name


def build_key(resource: str, params: Optional[Mapping[str, Any]] = None) -> QueryKey:
    """Build the cache key for a resource request."""
    params = params or {}
    parts = [resource]
    for name in _ordered_names(resource, params):
        value = params[name]
        if is_unset_param(resource, name, value):
            continue
        parts.append((name, freeze(value)))
    return tuple(parts)


def build_detail_key(resource: str, entity_id: Any) -> QueryKey:
    """Build the key for a single-entity query, e.g. ``("coupon-detail", ("id", "c1"))``."""
    return build_key(resource, {"id": entity_id})


def as_prefix(target: KeyTarget) -> QueryKey:
    """A bare resource name addresses the whole resource family."""
    if isinstance(target, str):
        return (target,)
    return tuple(target)


def key_matches(key: QueryKey, target: KeyTarget, exact: bool = False) -> bool:
    """Check whether ``key`` is addressed by ``target`` (exact key or key prefix)."""
    prefix = as_prefix(target)
    if exact:
        return key == prefix
    return key[:len(prefix)] == prefix


def key_resource(key: QueryKey) -> str:
    """Resource name a key belongs to."""
    return str(key[0]) if key else ""
