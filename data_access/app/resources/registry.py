"""
Resource registry.

One ``ResourceDefinition`` per admin collection: where it lives, which
envelope keys carry its collection and single record, how its cache keys are
named and which other families its writes make stale. Single-document
endpoints (dashboard aggregates, settings, the admin profile) are described
by ``DocumentDefinition``.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from ..caching.keys import register_key_order


@dataclass(frozen=True)
class ResourceDefinition:
    """Static description of one remote resource."""
    name: str
    path: str
    list_keys: Tuple[str, ...]
    detail_key: str
    id_field: str = "id"
    default_limit: int = 10
    entity: Optional[str] = None
    key_order: Tuple[str, ...] = field(default=())
    related: Tuple[str, ...] = field(default=())
    paginated: bool = True
    stale_time: Optional[float] = None
    cache_time: Optional[float] = None

    @property
    def entity_resource(self) -> str:
        """Alias table used to normalize this resource's records."""
        return self.entity or self.name

    @property
    def detail_resource(self) -> str:
        """Cache key family for single-entity queries, e.g. ``coupon-detail``."""
        return f"{self.detail_key.replace('_', '-')}-detail"

    @property
    def stats_resource(self) -> str:
        return f"{self.name}-stats"

    def detail_keys(self) -> Tuple[str, ...]:
        """Envelope keys that may carry a single record."""
        camel = "".join(
            part if index == 0 else part.capitalize()
            for index, part in enumerate(self.detail_key.split("_"))
        )
        keys = [self.detail_key]
        if camel != self.detail_key:
            keys.append(camel)
        return tuple(keys)

    def id_fields(self) -> Tuple[str, ...]:
        """Record fields that may carry the entity id, most specific first."""
        if self.id_field == "id":
            return ("id",)
        return (self.id_field, "id")


@dataclass(frozen=True)
class DocumentDefinition:
    """
    A single remote document read as a whole, such as a dashboard aggregate
    or the settings object. ``key_params`` are the request parameters that
    distinguish cached copies; ``record_key`` names the envelope field that
    carries the document when it is wrapped.
    """
    name: str
    path: str
    key_params: Tuple[str, ...] = field(default=())
    record_key: Optional[str] = None
    stale_time: Optional[float] = None
    cache_time: Optional[float] = None
    refetch_on_window_focus: Optional[bool] = None
    related: Tuple[str, ...] = field(default=())


RESOURCES: Dict[str, ResourceDefinition] = {}
DOCUMENTS: Dict[str, DocumentDefinition] = {}


def register_resource(definition: ResourceDefinition) -> ResourceDefinition:
    """Register a resource and its cache key parameter order."""
    RESOURCES[definition.name] = definition
    if definition.key_order:
        register_key_order(definition.name, definition.key_order)
    return definition


def register_document(definition: DocumentDefinition) -> DocumentDefinition:
    DOCUMENTS[definition.name] = definition
    if definition.key_params:
        register_key_order(definition.name, definition.key_params)
    return definition


def get_resource(name: str) -> ResourceDefinition:
    try:
        return RESOURCES[name]
    except KeyError:
        raise ValueError(f"Unknown resource '{name}'") from None


def get_document(name: str) -> DocumentDefinition:
    try:
        return DOCUMENTS[name]
    except KeyError:
        raise ValueError(f"Unknown document '{name}'") from None


def resource_names() -> Iterable[str]:
    return tuple(RESOURCES)


def document_names() -> Iterable[str]:
    return tuple(DOCUMENTS)


for _definition in (
    ResourceDefinition(
        "coupons", "/admin/coupons", ("coupons", "coupon"), "coupon", id_field="coupon_id", default_limit=20
    ),
    ResourceDefinition("bookings", "/admin/bookings", ("bookings",), "booking", id_field="booking_id"),
    ResourceDefinition("providers", "/admin/providers", ("providers",), "provider", id_field="provider_id"),
    ResourceDefinition("banners", "/admin/banners", ("banners", "banner"), "banner", id_field="banner_id"),
    ResourceDefinition(
        "sub-banners", "/admin/sub-banners", ("sub_banners", "subBanners"), "sub_banner",
        id_field="sub_banner_id", related=("banner-settings",),
    ),
    ResourceDefinition(
        "mep-banners", "/admin/mep-banners", ("banners", "mep_banners"), "mep_banner",
        id_field="mep_banner_id", related=("mep-banner-settings",),
    ),
    ResourceDefinition(
        "categories", "/admin/catalog/categories", ("categories",), "category", id_field="category_id"
    ),
    ResourceDefinition("services", "/admin/catalog/services", ("services",), "service", id_field="service_id"),
    ResourceDefinition(
        "sub-services", "/admin/catalog/sub-services", ("subServices", "sub_services"), "sub_service",
        id_field="sub_service_id", related=("services",),
    ),
    ResourceDefinition("add-ons", "/admin/catalog/add-ons", ("addOns", "add_ons"), "add_on", id_field="addon_id"),
    ResourceDefinition("roles", "/admin/roles", ("roles",), "role", id_field="role_id"),
    ResourceDefinition("users", "/admin/users", ("users",), "user", id_field="user_id"),
    ResourceDefinition("templates", "/admin/templates", ("templates",), "template", id_field="template_id"),
    ResourceDefinition(
        "payments", "/admin/payments", ("transactions", "payments"), "transaction", id_field="transaction_id"
    ),
    ResourceDefinition("payouts", "/admin/payments/payouts", ("payouts",), "payout", id_field="payout_id"),
    ResourceDefinition("projects", "/admin/mep/projects", ("projects",), "project", id_field="project_id"),
    ResourceDefinition(
        "project-items", "/admin/mep/project-items", ("project_items", "projectItems"), "project_item",
        id_field="project_item_id",
    ),
    ResourceDefinition("items", "/admin/mep/items", ("items",), "item", id_field="item_id"),
    ResourceDefinition(
        "policies", "/admin/policies", ("policies",), "policy",
        id_field="policy_id", paginated=False, stale_time=30,
    ),
    ResourceDefinition(
        "permissions", "/admin/permissions", ("permissions",), "permission",
        id_field="permission_id", paginated=False, related=("roles",), stale_time=60, cache_time=600,
    ),
    ResourceDefinition(
        "service-cost", "/admin/service-cost-config", ("configs",), "config",
        id_field="config_id", key_order=("page", "limit"), related=("service-cost-active",),
    ),
    ResourceDefinition(
        "system-logs", "/admin/settings/logs", ("logs",), "log",
        id_field="log_id", default_limit=20, stale_time=30, cache_time=300,
        key_order=("page", "limit", "level", "service", "search", "start_date", "end_date"),
    ),
):
    register_resource(_definition)


_DASHBOARD = "/admin/dashboard"

for _document in (
    DocumentDefinition(
        "dashboard-stats", f"{_DASHBOARD}/stats", ("period", "start_date", "end_date"),
        stale_time=30, cache_time=300, refetch_on_window_focus=True,
    ),
    DocumentDefinition(
        "booking-trend", f"{_DASHBOARD}/booking-trend", ("days",),
        stale_time=60, cache_time=300, refetch_on_window_focus=True,
    ),
    DocumentDefinition(
        "revenue-by-category", f"{_DASHBOARD}/revenue-by-category", ("start_date", "end_date"),
        stale_time=60, cache_time=300, refetch_on_window_focus=True,
    ),
    DocumentDefinition(
        "pending-approvals", f"{_DASHBOARD}/pending-approvals", record_key="count",
        stale_time=30, cache_time=300, refetch_on_window_focus=True,
    ),
    DocumentDefinition(
        "settlement-queue", f"{_DASHBOARD}/settlement-queue", record_key="count",
        stale_time=30, cache_time=300, refetch_on_window_focus=True,
    ),
    DocumentDefinition("settings", "/admin/settings", stale_time=300, cache_time=600),
    DocumentDefinition("banner-settings", "/admin/banner-settings"),
    DocumentDefinition("mep-banner-settings", "/admin/mep-banner-settings"),
    DocumentDefinition("adminProfile", "/admin/profile", record_key="user", stale_time=30, cache_time=300),
    DocumentDefinition("service-cost-active", "/admin/service-cost-config/active"),
):
    register_document(_document)
