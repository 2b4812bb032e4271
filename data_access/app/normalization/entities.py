"""
Canonical entity models and per-resource alias tables.

``normalize(resource, raw)`` turns any raw backend record into the canonical
pydantic model for that resource. Raw fields the table does not know about
are kept as extra attributes; canonical values overwrite raw fields of the
same name. Normalizing an already canonical entity returns an equal entity.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict

from .raw import RawPayload
from .resolver import (
    MISSING,
    Alias,
    AliasTable,
    first_named,
    flag,
    integer,
    listing,
    names_of,
    nested_total,
    number,
    relation_name,
    status,
    text,
)


class CanonicalEntity(BaseModel):
    """Base for canonical entities; unknown raw fields are retained."""

    model_config = ConfigDict(extra="allow")


class Coupon(CanonicalEntity):
    id: str
    code: str
    type: str
    value: float
    expiry: str
    usage_count: int
    max_usage: int
    created_at: str
    revenue_impact: float
    redemptions: int
    min_order_amount: float
    status: str
    is_active: bool


class Booking(CanonicalEntity):
    id: str
    user_name: str
    provider_name: str
    service: str
    date_time: str
    status: str
    amount: float
    payment_type: str
    payment_status: str
    address: str
    phone: str
    user_id: str
    provider_id: str
    service_id: str
    created_at: str
    updated_at: str
    notes: str


class Provider(CanonicalEntity):
    id: str
    name: str
    service_category: str
    kyc_status: str
    rating: float
    jobs_completed: int
    earnings: float
    status: str
    join_date: str
    avatar: str


class Banner(CanonicalEntity):
    banner_id: str
    title: str
    image_url: str
    is_active: bool
    banner_type: str
    category_id: str
    category: str
    created_at: str
    updated_at: str


class SubBanner(CanonicalEntity):
    sub_banner_id: str
    title: str
    image_url: str
    is_active: bool
    category_id: str
    category: str
    created_at: str
    updated_at: str


class MepBanner(CanonicalEntity):
    mep_banner_id: str
    title: str
    image_url: str
    is_active: bool
    banner_type: str
    created_at: str
    updated_at: str


class Category(CanonicalEntity):
    category_id: str
    name: str
    description: str
    display_order: int
    icon_url: str
    status: str
    is_active: bool


class Service(CanonicalEntity):
    service_id: str
    name: str
    description: str
    category: str
    category_id: str
    category_name: str
    sub_service_id: str
    sub_service_name: str
    base_price: float
    duration: int
    display_order: int
    image: str
    skills: List[Any]
    status: str
    is_active: bool


class SubService(CanonicalEntity):
    id: str
    name: str
    service_id: str
    category_id: str
    category_name: str
    display_order: int
    image: str
    image_url: str
    status: str
    is_active: bool


class AddOn(CanonicalEntity):
    addon_id: str
    name: str
    price: float
    is_per_unit: bool
    applies_to: List[Any]


class Role(CanonicalEntity):
    role_id: str
    name: str
    description: str
    permissions: List[Any]
    users_count: int
    status: str
    is_active: bool


class User(CanonicalEntity):
    user_id: str
    name: str
    email: str
    phone: str
    total_bookings: int
    status: str
    join_date: str
    last_active: str
    total_spent: float


class Template(CanonicalEntity):
    template_id: str
    name: str
    channel: str
    subject: str
    body: str
    variables: List[Any]
    status: str
    is_active: bool


class PaymentTransaction(CanonicalEntity):
    transaction_id: str
    user_name: str
    user_email: str
    order_id: str
    amount: float
    currency: str
    payment_mode: str
    status: str
    gateway: str
    created_at: str


class Payout(CanonicalEntity):
    payout_id: str
    provider_id: str
    provider_name: str
    total_earnings: float
    commission_deducted: float
    net_amount: float
    status: str
    payout_date: str


class Project(CanonicalEntity):
    id: str
    name: str
    description: str
    display_order: int
    image_url: str
    status: str
    is_active: bool


class ProjectItem(CanonicalEntity):
    id: str
    name: str
    project_id: str
    project_name: str
    display_order: int
    image_url: str
    status: str
    is_active: bool


class Item(CanonicalEntity):
    id: str
    name: str
    price: float
    project_item_id: str
    project_item_name: str
    status: str
    is_active: bool


class Policy(CanonicalEntity):
    policy_id: str
    title: str
    policy_type: str
    content: str
    version: str
    status: str
    version_history: List[Any]
    updated_at: str


class PermissionModule(CanonicalEntity):
    module: str
    actions: List[Any]


class ServiceCostConfig(CanonicalEntity):
    config_id: str
    service_cost_amount: float
    free_service_threshold: float
    service_cost_tax_rate: float
    order_tax_rate: float
    is_active: bool
    valid_from: str
    valid_until: str
    description: str
    created_at: str
    updated_at: str


class SystemLog(CanonicalEntity):
    log_id: str
    timestamp: str
    service: str
    level: str
    message: str
    details: str
    status: str
    user_name: str
    entity_type: str


# ----------------------------------------------------------------------
# Field transforms specific to a resource
# ----------------------------------------------------------------------

COUPON_TYPES = {
    "PERCENTAGE": "percentage",
    "PERCENT": "percentage",
    "FLAT_AMOUNT": "fixed",
    "FLAT": "fixed",
    "FIXED": "fixed",
}

NO_VALUE = "N/A"
NO_RELATION = "—"


def _clock_time(stamp: str) -> Optional[str]:
    try:
        return datetime.fromisoformat(stamp.replace("Z", "+00:00")).strftime("%H:%M")
    except ValueError:
        return None


def scheduled_date_time(value: Any, raw: Mapping[str, Any]) -> Any:
    """``scheduled_date`` plus ``scheduled_time`` (or the HH:MM of ``scheduled_time_start``)."""
    if not isinstance(value, str) or not value:
        return MISSING
    scheduled_time = raw.get("scheduled_time")
    if isinstance(scheduled_time, str) and scheduled_time:
        return f"{value} {scheduled_time}"
    start = raw.get("scheduled_time_start")
    if isinstance(start, str) and start:
        clock = _clock_time(start)
        if clock:
            return f"{value} {clock}"
    return value


def full_address(value: Any, raw: Mapping[str, Any]) -> Any:
    if isinstance(value, Mapping):
        return value.get("full_address", MISSING)
    return value


def _is_active(values: Dict[str, Any]) -> bool:
    return values["status"] == "active"


def _with_status_flag(resource: str, *rules) -> AliasTable:
    return AliasTable(resource=resource, rules=tuple(rules), derived={"is_active": _is_active})


# ----------------------------------------------------------------------
# Alias tables
# ----------------------------------------------------------------------

COUPON_TABLE = _with_status_flag(
    "coupons",
    text("id", "coupon_id", "public_id"),
    text("code", "coupon_code"),
    text(
        "type",
        Alias("type", value_map=COUPON_TYPES),
        Alias("coupon_type", value_map=COUPON_TYPES),
        Alias("discount_type", value_map=COUPON_TYPES),
        default="fixed",
        choices=("percentage", "fixed"),
    ),
    number("value", "discount_value"),
    text("expiry", "expiry_date", "expires_at"),
    integer("usage_count", "usageCount"),
    integer("max_usage", "maxUsage"),
    text("created_at", "createdAt"),
    number("revenue_impact", "revenueImpact"),
    integer("redemptions", "usageCount", "usage_count"),
    number("min_order_amount", "minOrderAmount"),
    status(),
)

BOOKING_TABLE = AliasTable(
    resource="bookings",
    rules=(
        text("id", "booking_id", "id", canonical_first=False),
        text("user_name", "user.name", "userName", default=NO_VALUE),
        text("provider_name", "provider.name", "providerName", "provider.business_name", default=NO_VALUE),
        text("service", Alias("service", transform=relation_name), "service_name", default=NO_VALUE),
        text("date_time", Alias("scheduled_date", transform=scheduled_date_time), "created_at"),
        text("status", default="pending", lowercase=True),
        number("amount"),
        text("payment_type", "payment_method", "paymentType", default=NO_VALUE),
        text("payment_status", default="pending", lowercase=True),
        text("address", Alias("address", transform=full_address), default=NO_VALUE),
        text("phone", "user.phone", default=NO_VALUE),
        text("user_id", "user.user_id", "userId"),
        text("provider_id", "provider.provider_id", "providerId"),
        text("service_id", "serviceId"),
        text("created_at", "createdAt"),
        text("updated_at", "updatedAt"),
        text("notes"),
    ),
)

PROVIDER_TABLE = AliasTable(
    resource="providers",
    rules=(
        text("id", "provider_id", "id", canonical_first=False),
        text("name", "business_name", default=NO_VALUE),
        text(
            "service_category",
            Alias("service_categories", transform=first_named),
            "serviceCategory",
            default=NO_VALUE,
        ),
        text("kyc_status", "kycStatus", default="pending", lowercase=True),
        number("rating"),
        integer("jobs_completed", "jobs", "jobsCompleted", "total_jobs"),
        number("earnings", Alias("earnings", transform=nested_total("total_net"))),
        text("status", default="active", lowercase=True),
        text("join_date", "joined_at", "joinDate", "createdAt", "created_at"),
        text("avatar", "user.profile_picture_url"),
    ),
)

BANNER_TABLE = AliasTable(
    resource="banners",
    rules=(
        text("banner_id", "id"),
        text("title"),
        text("image_url", "image"),
        flag("is_active", default=True),
        text("banner_type", default="offer"),
        text("category_id", "category.category_id", "category.public_id"),
        text("category", Alias("category", transform=relation_name)),
        text("created_at", "createdAt"),
        text("updated_at", "updatedAt"),
    ),
)

SUB_BANNER_TABLE = AliasTable(
    resource="sub-banners",
    rules=(
        text("sub_banner_id", "id"),
        text("title"),
        text("image_url", "image"),
        flag("is_active", default=True),
        text("category_id", "category.category_id", "category.public_id"),
        text("category", Alias("category", transform=relation_name)),
        text("created_at", "createdAt"),
        text("updated_at", "updatedAt"),
    ),
)

MEP_BANNER_TABLE = AliasTable(
    resource="mep-banners",
    rules=(
        text("mep_banner_id", "id"),
        text("title"),
        text("image_url", "image"),
        flag("is_active", default=True),
        text("banner_type", default="offer"),
        text("created_at", "createdAt"),
        text("updated_at", "updatedAt"),
    ),
)

CATEGORY_TABLE = _with_status_flag(
    "categories",
    text("category_id", "id", "public_id"),
    text("name"),
    text("description"),
    integer("display_order", "displayOrder"),
    text("icon_url", "iconUrl"),
    status(),
)

SERVICE_TABLE = _with_status_flag(
    "services",
    text("service_id", "id", "public_id"),
    text("name"),
    text("description"),
    text("category", Alias("category", transform=relation_name), "categoryName"),
    text("category_id", "categoryId", "category.category_id", "category.public_id"),
    text("category_name", "categoryName", Alias("category", transform=relation_name)),
    text("sub_service_id", "subServiceId"),
    text("sub_service_name", "subServiceName"),
    number("base_price", "basePrice"),
    integer("duration", "duration_minutes"),
    integer("display_order", "displayOrder"),
    text("image", "image_url"),
    listing("skills", "skills_tags"),
    status(),
)

SUB_SERVICE_TABLE = _with_status_flag(
    "sub-services",
    text("id", "public_id", "sub_service_id", "subServiceId"),
    text("name"),
    text("service_id", "serviceId", "service.service_id"),
    text(
        "category_id",
        "categoryId",
        "service.category.category_id",
        "service.category.public_id",
        "category.category_id",
        "category.public_id",
    ),
    text("category_name", "service.category.name", Alias("category", transform=relation_name)),
    integer("display_order", "displayOrder"),
    text("image", "image_url"),
    text("image_url"),
    status(),
)

ADD_ON_TABLE = AliasTable(
    resource="add-ons",
    rules=(
        text("addon_id", "add_on_id", "id"),
        text("name"),
        number("price", "price_per_unit"),
        flag("is_per_unit", "isPerUnit"),
        listing("applies_to", "appliesTo", "service_ids"),
    ),
)

ROLE_TABLE = _with_status_flag(
    "roles",
    text("role_id", "id"),
    text("name", "role_name"),
    text("description"),
    listing("permissions", Alias("permissions", transform=names_of), canonical_first=False),
    integer("users_count", "usersCount", "user_count"),
    status(default="active"),
)

USER_TABLE = AliasTable(
    resource="users",
    rules=(
        text("user_id", "id"),
        text("name", "full_name"),
        text("email"),
        text("phone", "phone_number"),
        integer("total_bookings", "totalBookings"),
        text("status", default="active", lowercase=True),
        text("join_date", "joinDate", "created_at", "createdAt"),
        text("last_active", "lastActive", "last_login"),
        number("total_spent", "totalSpent"),
    ),
)

TEMPLATE_TABLE = _with_status_flag(
    "templates",
    text("template_id", "id"),
    text("name"),
    text("channel", lowercase=True),
    text("subject"),
    text("body", "content"),
    listing("variables"),
    status(default="active"),
)

PAYMENT_TABLE = AliasTable(
    resource="payments",
    rules=(
        text("transaction_id", "id"),
        text("user_name", "user.name"),
        text("user_email", "user.email"),
        text("order_id", "booking_id"),
        number("amount"),
        text("currency", default="INR"),
        text("payment_mode", "payment_method"),
        text("status", default="pending", lowercase=True),
        text("gateway"),
        text("created_at", "createdAt"),
    ),
)

PAYOUT_TABLE = AliasTable(
    resource="payouts",
    rules=(
        text("payout_id", "id"),
        text("provider_id", "provider.provider_id", "provider.id"),
        text("provider_name", "provider.name", "provider.business_name", default=NO_VALUE),
        number("total_earnings"),
        number("commission_deducted"),
        number("net_amount"),
        text("status", default="pending", lowercase=True),
        text("payout_date", "created_at"),
    ),
)

PROJECT_TABLE = _with_status_flag(
    "projects",
    text("id", "public_id", "project_id"),
    text("name"),
    text("description"),
    integer("display_order", "displayOrder", "sort_order"),
    text("image_url", "imageUrl"),
    status(),
)

PROJECT_ITEM_TABLE = _with_status_flag(
    "project-items",
    text("id", "public_id", "project_item_id"),
    text("name"),
    text("project_id", "project.id", "project.project_id", "project.public_id"),
    text("project_name", "project.name", default=NO_RELATION),
    integer("display_order", "displayOrder", "sort_order"),
    text("image_url", "imageUrl"),
    status(),
)

ITEM_TABLE = _with_status_flag(
    "items",
    text("id", "public_id", "item_id"),
    text("name"),
    number("price", "meta_data.price"),
    text("project_item_id", "project_item.id", "project_item.project_item_id", "project_item.public_id"),
    text("project_item_name", "project_item.name", default=NO_RELATION),
    status(),
)

POLICY_TABLE = AliasTable(
    resource="policies",
    rules=(
        text("policy_id", "id"),
        text("title", "name"),
        text("policy_type", "type"),
        text("content"),
        text("version", "current_version"),
        text("status", default="draft", lowercase=True),
        listing("version_history", "versions"),
        text("updated_at", "updatedAt"),
    ),
)

PERMISSION_TABLE = AliasTable(
    resource="permissions",
    rules=(
        text("module", "name"),
        listing("actions", "permissions"),
    ),
)

SERVICE_COST_TABLE = AliasTable(
    resource="service-cost",
    rules=(
        text("config_id", "id"),
        number("service_cost_amount"),
        number("free_service_threshold"),
        number("service_cost_tax_rate"),
        number("order_tax_rate"),
        flag("is_active"),
        text("valid_from"),
        text("valid_until"),
        text("description"),
        text("created_at", "createdAt"),
        text("updated_at", "updatedAt"),
    ),
)

SYSTEM_LOG_TABLE = AliasTable(
    resource="system-logs",
    rules=(
        text("log_id", "id"),
        text("timestamp", "created_at"),
        text("service"),
        text("level", default="info", lowercase=True),
        text("message"),
        text("details"),
        text("status"),
        text("user_name", "user.name", default=NO_VALUE),
        text("entity_type"),
    ),
)


ENTITY_REGISTRY: Dict[str, Tuple[Type[CanonicalEntity], AliasTable]] = {
    "coupons": (Coupon, COUPON_TABLE),
    "bookings": (Booking, BOOKING_TABLE),
    "providers": (Provider, PROVIDER_TABLE),
    "banners": (Banner, BANNER_TABLE),
    "sub-banners": (SubBanner, SUB_BANNER_TABLE),
    "mep-banners": (MepBanner, MEP_BANNER_TABLE),
    "categories": (Category, CATEGORY_TABLE),
    "services": (Service, SERVICE_TABLE),
    "sub-services": (SubService, SUB_SERVICE_TABLE),
    "add-ons": (AddOn, ADD_ON_TABLE),
    "roles": (Role, ROLE_TABLE),
    "users": (User, USER_TABLE),
    "templates": (Template, TEMPLATE_TABLE),
    "payments": (PaymentTransaction, PAYMENT_TABLE),
    "payouts": (Payout, PAYOUT_TABLE),
    "projects": (Project, PROJECT_TABLE),
    "project-items": (ProjectItem, PROJECT_ITEM_TABLE),
    "items": (Item, ITEM_TABLE),
    "policies": (Policy, POLICY_TABLE),
    "permissions": (PermissionModule, PERMISSION_TABLE),
    "service-cost": (ServiceCostConfig, SERVICE_COST_TABLE),
    "system-logs": (SystemLog, SYSTEM_LOG_TABLE),
}


def register_entity(resource: str, model: Type[CanonicalEntity], table: AliasTable) -> None:
    """Register (or replace) the canonical model and alias table for a resource."""
    ENTITY_REGISTRY[resource] = (model, table)


def entity_spec(resource: str) -> Tuple[Type[CanonicalEntity], AliasTable]:
    try:
        return ENTITY_REGISTRY[resource]
    except KeyError:
        raise ValueError(f"No entity mapping registered for resource '{resource}'") from None


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, Mapping):
        return raw
    raise TypeError(f"Cannot normalize {type(raw).__name__}; expected a mapping or model")


def normalize(resource: str, raw: RawPayload) -> CanonicalEntity:
    """Normalize one raw record into the canonical entity for ``resource``."""
    model, table = entity_spec(resource)
    record = _as_mapping(raw)
    canonical = table.apply(record)
    extras = {
        name: value for name, value in record.items()
        if isinstance(name, str) and not name.startswith("_") and name not in canonical
    }
    return model.model_validate({**extras, **canonical})


def normalize_many(resource: str, items: Optional[Iterable[RawPayload]]) -> List[CanonicalEntity]:
    """Normalize a collection; None yields an empty list."""
    if items is None:
        return []
    return [normalize(resource, item) for item in items]
