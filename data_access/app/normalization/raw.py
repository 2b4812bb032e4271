"""
Known raw payload shapes returned by the admin APIs.

These are descriptive only: backends mix camelCase and snake_case and omit
fields freely, so every shape is ``total=False`` and the normalizer accepts
any ``Mapping[str, Any]`` at the boundary.
"""

from typing import Any, Dict, List, Mapping, Optional, TypedDict, Union


class RawCategoryRef(TypedDict, total=False):
    category_id: str
    public_id: str
    name: str


class RawCoupon(TypedDict, total=False):
    id: str
    code: str
    type: str
    coupon_type: str
    discount_type: str
    value: float
    discount_value: float
    expiry: str
    expiry_date: str
    expires_at: str
    usageCount: int
    usage_count: int
    maxUsage: int
    max_usage: int
    createdAt: str
    created_at: str
    revenueImpact: float
    revenue_impact: float
    redemptions: int
    minOrderAmount: float
    min_order_amount: float
    status: str
    is_active: Union[bool, str]


class RawBooking(TypedDict, total=False):
    booking_id: str
    id: str
    user: Dict[str, Any]
    userName: str
    provider: Dict[str, Any]
    providerName: str
    service: str
    service_name: str
    scheduled_date: str
    scheduled_time: str
    scheduled_time_start: str
    status: str
    amount: float
    payment_method: str
    paymentType: str
    payment_status: str
    address: Union[str, Dict[str, Any]]
    phone: str
    service_id: str
    created_at: str
    updated_at: str
    notes: str


class RawProvider(TypedDict, total=False):
    provider_id: str
    id: str
    name: str
    business_name: str
    service_categories: List[Dict[str, Any]]
    serviceCategory: str
    kyc_status: str
    kycStatus: str
    rating: float
    jobs: int
    jobsCompleted: int
    total_jobs: int
    earnings: Union[float, Dict[str, Any]]
    status: str
    joined_at: str
    joinDate: str
    createdAt: str
    user: Dict[str, Any]


class RawBanner(TypedDict, total=False):
    banner_id: str
    sub_banner_id: str
    mep_banner_id: str
    id: str
    title: str
    image_url: str
    image: str
    is_active: Union[bool, str]
    banner_type: str
    category_id: Optional[str]
    category: Optional[RawCategoryRef]
    created_at: str
    createdAt: str
    updated_at: str
    updatedAt: str


class RawCategory(TypedDict, total=False):
    category_id: str
    name: str
    displayOrder: int
    display_order: int
    iconUrl: str
    icon_url: str
    status: str
    is_active: Union[bool, str]


class RawService(TypedDict, total=False):
    service_id: str
    name: str
    category: Union[str, RawCategoryRef]
    categoryId: str
    category_id: str
    subServiceId: str
    sub_service_id: str
    subServiceName: str
    sub_service_name: str
    basePrice: float
    base_price: float
    duration: int
    duration_minutes: int
    displayOrder: int
    display_order: int
    image: str
    image_url: str
    skills: List[str]
    skills_tags: List[str]
    status: str
    is_active: Union[bool, str]


class RawSubService(TypedDict, total=False):
    id: str
    public_id: str
    sub_service_id: str
    subServiceId: str
    name: str
    serviceId: str
    service_id: str
    service: Dict[str, Any]
    categoryId: str
    category: RawCategoryRef
    displayOrder: int
    display_order: int
    image: str
    image_url: Optional[str]
    status: str
    is_active: Union[bool, str]


class RawAddOn(TypedDict, total=False):
    addon_id: str
    id: str
    name: str
    price: float
    price_per_unit: float
    isPerUnit: bool
    is_per_unit: bool
    appliesTo: List[str]
    applies_to: List[str]
    service_ids: List[str]


class RawRole(TypedDict, total=False):
    role_id: str
    id: str
    name: str
    role_name: str
    description: str
    permissions: List[Union[str, Dict[str, Any]]]
    users_count: int
    usersCount: int
    status: str
    is_active: Union[bool, str]


class RawUser(TypedDict, total=False):
    user_id: str
    id: str
    name: str
    email: str
    phone: str
    total_bookings: int
    totalBookings: int
    status: str
    created_at: str
    joinDate: str
    last_active: str
    lastActive: str
    total_spent: float
    totalSpent: float


class RawTemplate(TypedDict, total=False):
    template_id: str
    id: str
    name: str
    channel: str
    subject: str
    body: str
    content: str
    variables: List[str]
    is_active: Union[bool, str]
    status: str


class RawPaymentTransaction(TypedDict, total=False):
    transaction_id: str
    id: str
    user: Dict[str, Any]
    order_id: str
    booking_id: str
    amount: float
    currency: str
    payment_mode: str
    payment_method: str
    status: str
    gateway: str
    created_at: str


class RawPayout(TypedDict, total=False):
    payout_id: str
    id: str
    provider: Dict[str, Any]
    total_earnings: float
    commission_deducted: float
    net_amount: float
    status: str
    payout_date: str


class RawProject(TypedDict, total=False):
    id: str
    public_id: str
    project_id: str
    name: str
    displayOrder: int
    sort_order: int
    imageUrl: str
    image_url: str
    status: str
    is_active: Union[bool, str]


class RawProjectItem(RawProject, total=False):
    project_item_id: str
    project_name: str
    project: Dict[str, Any]


class RawItem(TypedDict, total=False):
    id: str
    public_id: str
    item_id: str
    name: str
    price: Union[float, str]
    meta_data: Dict[str, Any]
    project_item_id: str
    project_item_name: str
    project_item: Dict[str, Any]
    status: str
    is_active: Union[bool, str]


class RawPagination(TypedDict, total=False):
    page: int
    limit: int
    total: int
    totalPages: int
    total_pages: int
    hasNextPage: bool
    has_next_page: bool
    hasPreviousPage: bool
    has_previous_page: bool


RawPayload = Union[
    RawCoupon,
    RawBooking,
    RawProvider,
    RawBanner,
    RawCategory,
    RawService,
    RawSubService,
    RawAddOn,
    RawRole,
    RawUser,
    RawTemplate,
    RawPaymentTransaction,
    RawPayout,
    RawProject,
    RawProjectItem,
    RawItem,
    Mapping[str, Any],
]
