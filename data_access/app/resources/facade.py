"""
Resource façade.

Binds a resource definition to the query cache, the transport and the
normalizer: list, detail and stats queries return canonical results, and
mutations invalidate the affected keys. ``DocumentFacade`` does the same for
single documents. ``DataAccessClient`` is the application root that owns the
store and hands out façades.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from shared.config import BaseConfig, get_config
from shared.errors import DataAccessError
from shared.logging import configure_logging, get_logger
from shared.metrics import get_metrics_collector
from ..adapters.api_client import ResourceApiClient
from ..caching.keys import QueryKey, build_detail_key, build_key
from ..caching.mutations import MutationDispatcher
from ..caching.query_cache import QueryCacheStore, QueryResult, Subscription
from ..normalization.entities import CanonicalEntity, normalize, normalize_many
from ..normalization.pagination import PaginationMeta, normalize_pagination
from .registry import DocumentDefinition, ResourceDefinition, get_document, get_resource


class _ResultView:
    """Status accessors shared by list and detail results."""

    query: QueryResult

    @property
    def status(self):
        return self.query.status

    @property
    def error(self) -> Optional[Exception]:
        return self.query.error

    @property
    def error_message(self) -> Optional[str]:
        error = self.query.error
        if error is None:
            return None
        if isinstance(error, DataAccessError):
            return error.message
        return str(error)

    @property
    def is_loading(self) -> bool:
        return self.query.is_loading

    @property
    def is_fetching(self) -> bool:
        return self.query.is_fetching

    @property
    def is_error(self) -> bool:
        return self.query.is_error

    @property
    def is_success(self) -> bool:
        return self.query.is_success


@dataclass(frozen=True)
class ListResult(_ResultView):
    """Canonical collection page plus the state of its query."""
    items: List[CanonicalEntity]
    pagination: Optional[PaginationMeta]
    query: QueryResult
    refetch_page: Optional[Callable[[], Any]] = None

    async def refetch(self) -> "ListResult":
        if self.refetch_page is None:
            return self
        return await self.refetch_page()


@dataclass(frozen=True)
class DetailResult(_ResultView):
    entity: Optional[CanonicalEntity]
    query: QueryResult


class ResourceFacade:
    """Cached, normalized access to one resource."""

    def __init__(
        self,
        definition: ResourceDefinition,
        store: QueryCacheStore,
        api: ResourceApiClient,
        dispatcher: MutationDispatcher,
        config: BaseConfig,
    ):
        self.definition = definition
        self.store = store
        self.api = api
        self.dispatcher = dispatcher
        self.config = config
        self.logger = get_logger(f"data_access.resources.{definition.name}")

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def list_params(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Request parameters with the resource's default page and limit filled in."""
        merged: Dict[str, Any] = {}
        if self.definition.paginated:
            merged.update(page=1, limit=self.definition.default_limit)
        merged.update(params or {})
        return merged

    def list_key(self, params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return build_key(self.definition.name, self.list_params(params))

    def detail_key(self, entity_id: Any) -> QueryKey:
        return build_detail_key(self.definition.detail_resource, entity_id)

    def stats_key(self, params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return build_key(self.definition.stats_resource, params)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list(
        self,
        params: Optional[Mapping[str, Any]] = None,
        *,
        enabled: Optional[bool] = None,
        keep_previous_data: Optional[bool] = None,
        stale_time: Optional[float] = None,
        cache_time: Optional[float] = None,
    ) -> ListResult:
        """Read one page of the collection."""
        request_params = self.list_params(params)
        key = build_key(self.definition.name, request_params)

        async def fetch_page():
            return await self.api.list(self.definition, request_params)

        query = await self.store.read(
            key,
            fetch_page,
            stale_time=self.definition.stale_time if stale_time is None else stale_time,
            cache_time=self.definition.cache_time if cache_time is None else cache_time,
            keep_previous_data=keep_previous_data,
            enabled=enabled,
        )
        return self.to_list_result(query)

    async def detail(self, entity_id: Any, *, enabled: Optional[bool] = None) -> DetailResult:
        """Read a single record; disabled when no id is given."""
        key = self.detail_key(entity_id)
        if entity_id is None or entity_id == "":
            enabled = False

        async def fetch_entity():
            return await self.api.get(self.definition, entity_id)

        query = await self.store.read(
            key,
            fetch_entity,
            stale_time=self.config.detail_stale_time,
            enabled=enabled,
        )
        return self.to_detail_result(query)

    async def stats(self, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Read aggregate statistics; the payload is returned as sent."""
        async def fetch_stats():
            return await self.api.stats(self.definition, params)

        return await self.store.read(self.stats_key(params), fetch_stats)

    def subscribe(
        self,
        listener: Callable[[ListResult], None],
        params: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Subscription:
        """Observe a collection page; ``listener`` receives canonical results."""
        request_params = self.list_params(params)

        async def fetch_page():
            return await self.api.list(self.definition, request_params)

        def on_change(query: QueryResult) -> None:
            listener(self.to_list_result(query))

        for name in ("stale_time", "cache_time"):
            if options.get(name) is None and getattr(self.definition, name) is not None:
                options[name] = getattr(self.definition, name)

        return self.store.subscribe(
            build_key(self.definition.name, request_params),
            fetch_page,
            on_change,
            **options,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, payload: Mapping[str, Any]) -> Any:
        return await self.dispatcher.mutate(
            lambda: self.api.create(self.definition, payload),
            invalidates=self._family_targets() + [self._created_detail],
            name=f"create {self.definition.name}",
        )

    async def update(self, entity_id: Any, payload: Mapping[str, Any]) -> Any:
        return await self.dispatcher.mutate(
            lambda: self.api.update(self.definition, entity_id, payload),
            invalidates=self._family_targets(entity_id),
            name=f"update {self.definition.name}",
        )

    async def delete(self, entity_id: Any) -> Any:
        return await self.dispatcher.mutate(
            lambda: self.api.delete(self.definition, entity_id),
            invalidates=self._family_targets(entity_id),
            name=f"delete {self.definition.name}",
        )

    async def action(
        self,
        entity_id: Any,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
        method: str = "POST",
    ) -> Any:
        """Run an entity action (approve, reject, status, publish)."""
        return await self.dispatcher.mutate(
            lambda: self.api.action(self.definition, entity_id, action, payload, method),
            invalidates=self._family_targets(entity_id),
            name=f"{action} {self.definition.name}",
        )

    def _family_targets(self, entity_id: Any = None) -> List[Any]:
        targets: List[Any] = [self.definition.name, self.definition.stats_resource]
        targets.extend(self.definition.related)
        if entity_id is not None:
            targets.append(self.detail_key(entity_id))
        return targets

    def _created_detail(self, result: Any) -> Optional[QueryKey]:
        entity_id = self.record_id(result)
        if entity_id is None:
            return None
        return self.detail_key(entity_id)

    # ------------------------------------------------------------------
    # Normalization of cached payloads
    # ------------------------------------------------------------------

    def to_list_result(self, query: QueryResult) -> ListResult:
        """Normalize the raw cached page on every read."""
        data = query.data
        pagination = None
        if isinstance(data, Mapping):
            pagination = normalize_pagination(data.get("pagination"), self.definition.default_limit)

        async def refetch_page() -> ListResult:
            return self.to_list_result(await query.refetch())

        return ListResult(
            items=normalize_many(self.definition.entity_resource, self.extract_items(data)),
            pagination=pagination,
            query=query,
            refetch_page=refetch_page,
        )

    def to_detail_result(self, query: QueryResult) -> DetailResult:
        record = self.extract_record(query.data)
        entity = normalize(self.definition.entity_resource, record) if record is not None else None
        return DetailResult(entity=entity, query=query)

    def extract_items(self, data: Any) -> List[Any]:
        """Collection from a list envelope, under any registered plural key."""
        if isinstance(data, list):
            return data
        if not isinstance(data, Mapping):
            return []
        for name in self.definition.list_keys:
            value = data.get(name)
            if isinstance(value, list):
                return value
        return []

    def extract_record(self, data: Any) -> Optional[Mapping[str, Any]]:
        if not isinstance(data, Mapping):
            return None
        for name in self.definition.detail_keys():
            value = data.get(name)
            if isinstance(value, Mapping):
                return value
        return data

    def record_id(self, data: Any) -> Any:
        """Entity id carried by a record or a single-record envelope, if any."""
        record = self.extract_record(data)
        if record is None:
            return None
        for name in self.definition.id_fields():
            value = record.get(name)
            if value is not None and value != "":
                return value
        return None


@dataclass(frozen=True)
class DocumentResult(_ResultView):
    """A single document plus the state of its query."""
    data: Any
    query: QueryResult


class DocumentFacade:
    """Cached access to one single-document endpoint."""

    def __init__(
        self,
        definition: DocumentDefinition,
        store: QueryCacheStore,
        api: ResourceApiClient,
        dispatcher: MutationDispatcher,
    ):
        self.definition = definition
        self.store = store
        self.api = api
        self.dispatcher = dispatcher
        self.logger = get_logger(f"data_access.documents.{definition.name}")

    def params(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Only the parameters that distinguish cached copies of the document."""
        params = params or {}
        return {name: params[name] for name in self.definition.key_params if name in params}

    def key(self, params: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return build_key(self.definition.name, self.params(params))

    async def get(
        self,
        params: Optional[Mapping[str, Any]] = None,
        *,
        enabled: Optional[bool] = None,
        stale_time: Optional[float] = None,
        cache_time: Optional[float] = None,
    ) -> DocumentResult:
        request_params = self.params(params)

        async def fetch_document():
            return await self.api.read_document(self.definition, request_params)

        query = await self.store.read(
            build_key(self.definition.name, request_params),
            fetch_document,
            stale_time=self.definition.stale_time if stale_time is None else stale_time,
            cache_time=self.definition.cache_time if cache_time is None else cache_time,
            enabled=enabled,
        )
        return self.to_result(query)

    def subscribe(
        self,
        listener: Callable[[DocumentResult], None],
        params: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Subscription:
        """Observe the document; dashboard documents refetch when the window regains focus."""
        request_params = self.params(params)

        async def fetch_document():
            return await self.api.read_document(self.definition, request_params)

        def on_change(query: QueryResult) -> None:
            listener(self.to_result(query))

        for name in ("stale_time", "cache_time", "refetch_on_window_focus"):
            if options.get(name) is None and getattr(self.definition, name) is not None:
                options[name] = getattr(self.definition, name)

        return self.store.subscribe(
            build_key(self.definition.name, request_params),
            fetch_document,
            on_change,
            **options,
        )

    async def update(self, payload: Mapping[str, Any]) -> Any:
        return await self.dispatcher.mutate(
            lambda: self.api.write_document(self.definition, payload),
            invalidates=self._targets(),
            name=f"update {self.definition.name}",
        )

    async def action(
        self,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
        method: str = "POST",
    ) -> Any:
        """Run a document action, e.g. ``integrations/sms/test`` on settings."""
        return await self.dispatcher.mutate(
            lambda: self.api.write_document(self.definition, payload, f"/{action}", method),
            invalidates=self._targets(),
            name=f"{action} {self.definition.name}",
        )

    def _targets(self) -> List[Any]:
        return [self.definition.name, *self.definition.related]

    def to_result(self, query: QueryResult) -> DocumentResult:
        return DocumentResult(data=self.extract(query.data), query=query)

    def extract(self, data: Any) -> Any:
        record_key = self.definition.record_key
        if record_key is not None and isinstance(data, Mapping) and record_key in data:
            return data[record_key]
        return data


class DataAccessClient:
    """Application root: one query cache, one transport, one façade per resource."""

    def __init__(
        self,
        config: Optional[BaseConfig] = None,
        *,
        api: Optional[ResourceApiClient] = None,
        store: Optional[QueryCacheStore] = None,
    ):
        self.config = config or get_config()
        metrics = get_metrics_collector("data_access") if self.config.metrics_enabled else None
        self.store = store or QueryCacheStore.create(self.config, metrics=metrics)
        self.api = api or ResourceApiClient.from_config(self.config, metrics=metrics)
        self.dispatcher = MutationDispatcher(self.store)
        self.logger = get_logger("data_access.client")
        self._facades: Dict[str, ResourceFacade] = {}
        self._documents: Dict[str, DocumentFacade] = {}

    @classmethod
    def create(cls, config: Optional[BaseConfig] = None, **kwargs: Any) -> "DataAccessClient":
        """Configure logging and build a client from configuration."""
        config = config or get_config()
        configure_logging("data_access", config.log_level, json_output=config.log_json)
        client = cls(config, **kwargs)
        client.logger.info(
            "Data access client created",
            env=client.config.env,
            api_base_url=client.config.api_base_url,
        )
        return client

    def resource(self, name: str) -> ResourceFacade:
        facade = self._facades.get(name)
        if facade is None:
            facade = ResourceFacade(get_resource(name), self.store, self.api, self.dispatcher, self.config)
            self._facades[name] = facade
        return facade

    def document(self, name: str) -> DocumentFacade:
        facade = self._documents.get(name)
        if facade is None:
            facade = DocumentFacade(get_document(name), self.store, self.api, self.dispatcher)
            self._documents[name] = facade
        return facade

    async def on_focus(self) -> int:
        """Window regained focus: refetch stale entries that opted in."""
        return await self.store.refetch_on_focus()

    async def dispose(self) -> None:
        await self.store.dispose()
        self._facades.clear()
        self._documents.clear()

    async def __aenter__(self) -> "DataAccessClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
