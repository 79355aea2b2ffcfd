"""
Query session: the explicit state of one user working with the event parser.

Everything the presentation layer needs (form inputs, parsed catalog,
selected event, filter inputs, results, current page and status) lives on
the session and is changed only through its methods. Errors raised by the
engine are caught here and turned into a Failed status.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from event_parser.app.application.services.fetch_events import fetch_events
from event_parser.app.application.services.pager import paginate, total_pages
from event_parser.app.application.services.schema_catalog import load_schema
from event_parser.app.domain.errors import EventParserError, QueryError, SchemaError
from event_parser.app.domain.models import (
    DecodedEvent,
    EventDefinition,
    PageView,
    QueryState,
    QueryStatus,
    SchemaCatalog,
)
from event_parser.app.domain.ports.out import ChainClient
from event_parser.app.infrastructure.presets import load_preset_text


logger = logging.getLogger(__name__)

ClientFactory = Callable[[str | None], ChainClient]


@dataclass
class FormInputs:
    contract_address: str = ""
    schema_text: str = ""
    from_block: str = ""
    to_block: str = ""
    rpc_endpoint: str = ""


@dataclass
class QuerySession:
    page_size: int = 15
    form: FormInputs = field(default_factory=FormInputs)
    catalog: SchemaCatalog | None = None
    selected_event: EventDefinition | None = None
    filter_inputs: dict[str, str] = field(default_factory=dict)
    results: list[DecodedEvent] = field(default_factory=list)
    results_event_name: str | None = None
    current_page: int = 1
    status: QueryStatus = field(default_factory=QueryStatus.idle)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")

    # ---------------------------------------------------------------------
    # Schema & selection
    # ---------------------------------------------------------------------

    def load_schema(self, text: str) -> bool:
        """Parse `text` into the catalog; the first event becomes selected."""
        self.form.schema_text = text
        try:
            catalog = load_schema(text)
        except EventParserError as e:
            logger.info("Schema rejected: %s", e.detail)
            self.catalog = None
            self.selected_event = None
            self.status = QueryStatus.failed(e)
            return False

        self.catalog = catalog
        self.status = QueryStatus.idle()
        self._select(catalog.default_event)
        return True

    def use_preset(self, name: str) -> bool:
        """Load one of the bundled interface presets (ERC20, ERC721)."""
        try:
            text = load_preset_text(name)
        except EventParserError as e:
            self.catalog = None
            self.selected_event = None
            self.status = QueryStatus.failed(e)
            return False
        return self.load_schema(text)

    def select_event(self, name: str) -> bool:
        if self.catalog is None:
            self.status = QueryStatus.failed(SchemaError("No schema loaded"))
            return False
        try:
            event = self.catalog.find(name)
        except EventParserError as e:
            self.status = QueryStatus.failed(e)
            return False
        self._select(event)
        return True

    def _select(self, event: EventDefinition) -> None:
        keep = {p.name for p in event.indexed_parameters}
        self.filter_inputs = {k: v for k, v in self.filter_inputs.items() if k in keep}
        self.selected_event = event
        self.current_page = 1

    def set_filter(self, name: str, value: str) -> None:
        self.filter_inputs[name] = value

    # ---------------------------------------------------------------------
    # Query
    # ---------------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        return self.status.state is QueryState.LOADING

    async def run_query(self, client_factory: ClientFactory) -> QueryStatus:
        """
        Run the query described by the form against a fresh client.

        Prior results are cleared first; the session ends up holding either
        the new results or an error, never both.
        """
        self.status = QueryStatus.loading()
        self.results = []
        self.results_event_name = None
        self.current_page = 1

        try:
            if self.catalog is None or self.selected_event is None:
                raise SchemaError("No schema loaded")
            client = _open_client(client_factory, self.form.rpc_endpoint)
            try:
                results = await fetch_events(
                    catalog=self.catalog,
                    event_name=self.selected_event.name,
                    from_block=self.form.from_block,
                    to_block=self.form.to_block,
                    raw_filters=self.filter_inputs,
                    address=self.form.contract_address,
                    client=client,
                )
            finally:
                await _close_client(client)
        except EventParserError as e:
            logger.warning("Query failed: %r", e)
            self.status = QueryStatus.failed(e)
            return self.status

        self.results = results
        self.results_event_name = self.selected_event.name
        self.status = QueryStatus.success()
        return self.status

    # ---------------------------------------------------------------------
    # Pagination
    # ---------------------------------------------------------------------

    @property
    def total_pages(self) -> int:
        return total_pages(self.results, self.page_size)

    def current_view(self) -> PageView:
        return paginate(self.results, self.page_size, self.current_page)

    def go_to_page(self, page_number: int) -> PageView:
        self.current_page = max(1, min(page_number, self.total_pages or 1))
        return self.current_view()

    def next_page(self) -> PageView:
        return self.go_to_page(self.current_page + 1)

    def previous_page(self) -> PageView:
        return self.go_to_page(self.current_page - 1)


def _open_client(client_factory: ClientFactory, rpc_endpoint: str) -> ChainClient:
    try:
        return client_factory(rpc_endpoint)
    except EventParserError:
        raise
    except Exception as e:
        raise QueryError(f"Cannot create chain client: {e}") from e


async def _close_client(client: ChainClient) -> None:
    # A failing close must not replace the query result or its error.
    try:
        await client.aclose()
    except Exception as e:
        logger.warning("Closing chain client failed: %r", e)
