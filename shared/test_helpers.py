"""
Test helper functions and factory methods for the admin data access layer.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional


class FakeClock:
    """Manually advanced monotonic clock for staleness and eviction tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ControlledFetcher:
    """
    Fetcher whose calls block until released.

    Each call gets its own gate so tests can resolve concurrent fetches in any
    order and observe which result wins.
    """

    def __init__(self):
        self.calls = 0
        self._gates: List[asyncio.Future] = []
        self.started = asyncio.Event()

    async def __call__(self) -> Any:
        self.calls += 1
        gate = asyncio.get_running_loop().create_future()
        self._gates.append(gate)
        self.started.set()
        return await gate

    def resolve(self, index: int, value: Any) -> None:
        self._gates[index].set_result(value)

    def reject(self, index: int, error: Exception) -> None:
        self._gates[index].set_exception(error)

    @property
    def pending(self) -> int:
        return sum(1 for gate in self._gates if not gate.done())


def counting_fetcher(value: Any = None, values: Optional[List[Any]] = None) -> Callable[[], Awaitable[Any]]:
    """Fetcher returning ``value`` (or successive ``values``), counting its calls."""

    async def fetch():
        fetch.calls += 1
        if values is not None:
            return values[min(fetch.calls, len(values)) - 1]
        return value

    fetch.calls = 0
    return fetch


def list_envelope(plural: str, records: List[Dict[str, Any]], pagination: Optional[Dict[str, Any]] = None,
                  message: str = "OK") -> Dict[str, Any]:
    """Successful list response as sent by the admin APIs."""
    data: Dict[str, Any] = {plural: records}
    if pagination is not None:
        data["pagination"] = pagination
    return {"status": 1, "message": message, "data": data}


def detail_envelope(singular: str, record: Dict[str, Any], message: str = "OK") -> Dict[str, Any]:
    return {"status": 1, "message": message, "data": {singular: record}}


class TestDataFactory:
    """Factory for raw backend payloads in their various shapes."""

    __test__ = False

    @staticmethod
    def create_raw_coupons() -> List[Dict[str, Any]]:
        """Coupons in snake_case, camelCase and enum-typed variants."""
        return [
            {
                "id": "c1",
                "code": "SAVE10",
                "coupon_type": "PERCENTAGE",
                "discount_value": "10",
                "expiry_date": "2025-12-31",
                "usage_count": 4,
                "max_usage": 100,
                "created_at": "2025-01-01T00:00:00Z",
                "status": "ACTIVE",
            },
            {
                "id": "c2",
                "code": "FLAT50",
                "type": "fixed",
                "value": 50,
                "expires_at": "2025-06-30",
                "usageCount": 12,
                "maxUsage": 20,
                "createdAt": "2025-02-01T00:00:00Z",
                "revenueImpact": 600,
                "is_active": False,
            },
            {
                "id": "c3",
                "code": "WELCOME",
                "coupon_type": "FLAT_AMOUNT",
                "value": "abc",
                "is_active": "true",
            },
        ]

    @staticmethod
    def create_raw_bookings() -> List[Dict[str, Any]]:
        return [
            {
                "booking_id": "BK-1001",
                "user": {"user_id": "u1", "name": "Asha Rao", "phone": "+91-9000000001"},
                "provider": {"provider_id": "p1", "business_name": "Sparkle Cleaners"},
                "service": {"service_id": "s1", "name": "Deep Cleaning"},
                "service_id": "s1",
                "scheduled_date": "2025-03-10",
                "scheduled_time": "10:30",
                "status": "CONFIRMED",
                "amount": "1499.00",
                "payment_method": "upi",
                "payment_status": "PAID",
                "address": {"full_address": "12 MG Road, Bengaluru"},
                "created_at": "2025-03-01T08:00:00Z",
            },
            {
                "id": "BK-1002",
                "userName": "Vikram Das",
                "providerName": "QuickFix",
                "service_name": "Plumbing",
                "scheduled_date": "2025-03-11",
                "scheduled_time_start": "2025-03-11T14:05:00Z",
                "amount": 799,
                "paymentType": "cash",
                "created_at": "2025-03-02T09:00:00Z",
            },
            {
                "id": "BK-1003",
                "created_at": "2025-03-03T10:00:00Z",
            },
        ]

    @staticmethod
    def create_raw_providers() -> List[Dict[str, Any]]:
        return [
            {
                "provider_id": "p1",
                "business_name": "Sparkle Cleaners",
                "service_categories": [{"category_id": "cat1", "name": "Cleaning"}],
                "kyc_status": "APPROVED",
                "rating": 4.6,
                "total_jobs": 120,
                "earnings": {"total_net": 45000.5},
                "status": "ACTIVE",
                "joined_at": "2024-05-01",
                "user": {"profile_picture_url": "https://cdn.example.com/p1.png"},
            },
            {
                "id": "p2",
                "name": "QuickFix",
                "serviceCategory": "Plumbing",
                "jobsCompleted": 15,
                "earnings": 3200,
                "joinDate": "2024-08-12",
            },
        ]

    @staticmethod
    def create_raw_services() -> List[Dict[str, Any]]:
        return [
            {
                "service_id": "s1",
                "name": "Deep Cleaning",
                "category": {"category_id": "cat1", "name": "Cleaning"},
                "base_price": "999",
                "duration_minutes": 180,
                "display_order": 1,
                "image_url": "https://cdn.example.com/s1.png",
                "skills_tags": ["cleaning", "sanitising"],
                "is_active": True,
            },
            {
                "service_id": "s2",
                "name": "Tap Repair",
                "category": "Plumbing",
                "categoryId": "cat2",
                "basePrice": 299,
                "status": "Inactive",
            },
        ]

    @staticmethod
    def create_raw_sub_services() -> List[Dict[str, Any]]:
        return [
            {
                "public_id": "ss1",
                "name": "Kitchen Cleaning",
                "service": {
                    "service_id": "s1",
                    "category": {"public_id": "cat1", "name": "Cleaning"},
                },
                "display_order": 2,
                "image_url": None,
                "status": "Active",
            },
            {
                "sub_service_id": "ss2",
                "name": "Bathroom Cleaning",
                "serviceId": "s1",
                "category": {"category_id": "cat1", "name": "Cleaning"},
                "is_active": "false",
            },
        ]

    @staticmethod
    def create_raw_mep_items() -> List[Dict[str, Any]]:
        return [
            {
                "public_id": "it1",
                "name": "Copper pipe",
                "meta_data": {"price": "250.5"},
                "project_item": {"project_item_id": "pi1", "name": "Plumbing lines"},
                "status": "ACTIVE",
            },
            {
                "id": "it2",
                "name": "Valve",
                "price": 80,
            },
        ]

    @staticmethod
    def create_pagination(page: int = 1, limit: int = 20, total: int = 45, camel: bool = True) -> Dict[str, Any]:
        """Pagination block as the API sends it."""
        total_pages = -(-total // limit) if limit else 0
        if camel:
            return {"page": page, "limit": limit, "total": total, "totalPages": total_pages}
        return {"page": page, "limit": limit, "total": total, "total_pages": total_pages}


class TestEnvironment:
    """Test environment configuration."""

    __test__ = False

    @staticmethod
    def get_mock_config() -> Dict[str, str]:
        """Get mock environment configuration."""
        return {
            "DATA_ACCESS_ENV": "test",
            "DATA_ACCESS_LOG_LEVEL": "debug",
            "DATA_ACCESS_API_BASE_URL": "http://api.test/api/v1",
            "DATA_ACCESS_REQUEST_TIMEOUT": "5",
            "DATA_ACCESS_DEFAULT_STALE_TIME": "30",
            "DATA_ACCESS_DEFAULT_CACHE_TIME": "300",
            "DATA_ACCESS_METRICS_ENABLED": "false",
        }


# Global instances for easy access
test_data_factory = TestDataFactory()
test_environment = TestEnvironment()
