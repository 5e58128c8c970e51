"""Product list ViewModel (MVVM): search, infinite scroll and session expiry.

Owns the result set of the product screen: accumulated items, the active
query, the paging window and the identity of the one request allowed to
mutate them.  The rendering layer binds to the observable properties (or to
:meth:`ProductListViewModel.snapshot`) and forwards user input through the
``on_*`` methods.

Stale responses are recognised by generation, not by arrival order: every
reset bumps ``_generation`` and cancels the in-flight
:class:`CancellationToken`, and a completion whose captured generation is no
longer current is dropped without touching state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from shelfview.application.services.paginated_loader import PaginatedProductLoader
from shelfview.config import PAGE_LIMIT, SCROLL_NEAR_END_THRESHOLD, SEARCH_DEBOUNCE_MS
from shelfview.domain.models import ListState, ProductListSnapshot, normalize_query
from shelfview.domain.repositories import ICredentialStore, IProductGateway
from shelfview.errors import CredentialStoreError, RequestCancelled, RequestFailed, Unauthorized
from shelfview.errors.handler import ErrorHandler, ErrorSeverity
from shelfview.events.bus import EventBus
from shelfview.events.session_events import (
    SESSION_EXPIRED,
    SESSION_LOGOUT,
    ProductsPageLoadedEvent,
    SessionEndedEvent,
)
from shelfview.utils.cancellation import CancellationToken

from .base import BaseViewModel
from .debouncer import SearchDebouncer
from .scroll_trigger import ScrollProximityTrigger
from .signal import ObservableProperty, Signal


class ProductListViewModel(BaseViewModel):
    """Searchable, incrementally loaded product list.

    States: ``IDLE``, ``LOADING`` (first or next page), ``REFRESHING``
    (pull-to-refresh), ``ERROR`` and the terminal ``LOGGED_OUT``.
    ``logged_out`` is emitted at most once, when the credential is rejected
    or the user logs out; the screen is expected to navigate to the login
    form and dispose this ViewModel.
    """

    def __init__(
        self,
        gateway: IProductGateway,
        credentials: ICredentialStore,
        event_bus: EventBus,
        limit: int = PAGE_LIMIT,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        scroll_threshold: float = SCROLL_NEAR_END_THRESHOLD,
        error_handler: Optional[ErrorHandler] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__()
        self._gateway = gateway
        self._credentials = credentials
        self._events = event_bus
        self._error_handler = error_handler
        self._logger = logging.getLogger(__name__)

        self._loader = PaginatedProductLoader(limit=limit)
        self._generation = 0
        self._inflight: Optional[CancellationToken] = None
        self._logged_out_emitted = False

        # Observable properties
        self.items = ObservableProperty(())
        self.loading = ObservableProperty(False)
        self.refreshing = ObservableProperty(False)
        self.error = ObservableProperty(None)
        self.has_more = ObservableProperty(True)
        self.state = ObservableProperty(ListState.IDLE)
        self.query = ObservableProperty("")

        # Signals
        self.snapshot_changed = Signal()  # emits (ProductListSnapshot)
        self.logged_out = Signal()  # emits (reason)

        self.debouncer = SearchDebouncer(delay_ms=debounce_ms, loop=loop)
        self.debouncer.connect(self._on_debounced_query)
        self.scroll_trigger = ScrollProximityTrigger(
            threshold=scroll_threshold,
            can_fire=self.can_fetch_more,
        )
        self.scroll_trigger.near_end.connect(self.on_scroll_near_end)

        # A logout performed elsewhere (another screen, the CLI) ends this list too.
        self.subscribe_event(event_bus, SessionEndedEvent, self._on_session_ended)

    # -- read-only views ---------------------------------------------------

    @property
    def offset(self) -> int:
        return self._loader.offset

    @property
    def limit(self) -> int:
        return self._loader.limit

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> ProductListSnapshot:
        return ProductListSnapshot(
            items=tuple(self._loader.items),
            loading=self.loading.value,
            refreshing=self.refreshing.value,
            error=self.error.value,
            has_more=self._loader.has_more,
            state=self.state.value,
            query=self._loader.query,
        )

    def can_fetch_more(self) -> bool:
        return (
            not self._closed
            and not self.state.value.is_busy
            and self._loader.has_more
        )

    # -- transitions -------------------------------------------------------

    async def start(self) -> None:
        """Load the first page of the unfiltered list."""
        await self.reset_and_fetch("")

    async def reset_and_fetch(self, query: Optional[str] = None, refreshing: bool = False) -> None:
        """Drop the current result set and load the first page of *query*.

        ``None`` keeps the active query.  Any in-flight request is cancelled
        and its eventual response ignored.
        """
        if self._closed:
            return
        new_query = self._loader.query if query is None else normalize_query(query)
        self._cancel_inflight("new search")
        self._generation += 1
        self._loader.reset(new_query)
        self.error.value = None
        self._set_state(ListState.IDLE)
        self._sync_result_set()
        self.scroll_trigger.rearm()
        self._logger.debug("Reset list q=%r generation=%d", new_query, self._generation)
        await self._fetch(refreshing=refreshing)

    async def fetch_more(self) -> None:
        """Load the next page unless busy or exhausted."""
        await self._fetch(refreshing=False)

    async def refresh(self) -> None:
        """Pull-to-refresh: a reset with the active query flagged as refreshing."""
        await self.reset_and_fetch(self._loader.query, refreshing=True)

    async def retry(self) -> None:
        await self.reset_and_fetch(self._loader.query)

    async def logout(self) -> None:
        if self._closed:
            return
        await self._end_session(SESSION_LOGOUT)

    def clear_search(self) -> Optional[asyncio.Task]:
        """Drop any pending keystrokes and show the unfiltered list at once."""
        self.debouncer.cancel()
        if not self._loader.query:
            return None
        return self.schedule(self.reset_and_fetch(""))

    # -- rendering-layer inputs --------------------------------------------

    def on_query_changed(self, text: str) -> None:
        if self._closed:
            return
        self.debouncer.on_change(text)

    def on_search_submitted(self) -> None:
        """Run the pending search now instead of waiting out the debounce."""
        if self._closed:
            return
        if self.debouncer.pending:
            self.debouncer.flush()

    def on_scroll(self, scroll_offset: float, viewport_extent: float, content_extent: float) -> bool:
        return self.scroll_trigger.update(scroll_offset, viewport_extent, content_extent)

    def on_scroll_near_end(self) -> Optional[asyncio.Task]:
        if not self.can_fetch_more():
            return None
        return self.schedule(self.fetch_more())

    def on_pull_to_refresh(self) -> Optional[asyncio.Task]:
        if self._closed:
            return None
        return self.schedule(self.refresh())

    def on_retry_pressed(self) -> Optional[asyncio.Task]:
        if self._closed:
            return None
        return self.schedule(self.retry())

    def on_logout_pressed(self) -> Optional[asyncio.Task]:
        if self._closed:
            return None
        return self.schedule(self.logout())

    def dispose(self) -> None:
        """Cancel the debouncer and in-flight work; no further mutation happens."""
        self.debouncer.dispose()
        self._cancel_inflight("disposed")
        self._generation += 1
        super().dispose()

    # -- internals ---------------------------------------------------------

    @property
    def _closed(self) -> bool:
        return self.disposed or self.state.value is ListState.LOGGED_OUT

    async def _fetch(self, refreshing: bool) -> None:
        if self._closed or self.state.value.is_busy or not self._loader.has_more:
            return

        generation = self._generation
        token = CancellationToken()
        self._inflight = token
        request = self._loader.next_request()
        self._set_state(ListState.REFRESHING if refreshing else ListState.LOADING)
        self._publish_snapshot()

        try:
            items = await self._gateway.list_products(
                request.query or None,
                request.offset,
                request.limit,
                cancel_token=token,
            )
        except RequestCancelled as exc:
            self._logger.debug("Dropped cancelled page q=%r offset=%d: %s", request.query, request.offset, exc.reason)
            return
        except Unauthorized as exc:
            self._logger.info("Session rejected by server: %s", exc.message)
            if not self._is_current(generation, token):
                # The credential is dead whichever request noticed it.
                await self._clear_credentials()
                return
            await self._end_session(SESSION_EXPIRED)
            return
        except (RequestFailed, CredentialStoreError) as exc:
            if not self._is_current(generation, token):
                return
            self._fail(exc, str(exc), request.query, request.offset)
            return
        except Exception as exc:
            if not self._is_current(generation, token):
                return
            self._logger.exception("Unexpected failure while loading products")
            self._fail(exc, f"Error: {exc}", request.query, request.offset)
            return

        if not self._is_current(generation, token):
            self._logger.debug("Dropped stale page q=%r offset=%d", request.query, request.offset)
            return

        self._inflight = None
        result = self._loader.apply_page(items)
        self.error.value = None
        self._set_state(ListState.IDLE)
        self._sync_result_set()
        self.scroll_trigger.rearm()
        self._publish_snapshot()
        self._events.publish(ProductsPageLoadedEvent(
            query=request.query,
            offset=result.offset,
            count=result.count,
        ))

    def _fail(self, exc: Exception, message: str, query: str, offset: int) -> None:
        self._inflight = None
        self.error.value = message
        self._set_state(ListState.ERROR)
        self._publish_snapshot()
        if self._error_handler is not None:
            self._error_handler.handle(
                exc,
                ErrorSeverity.WARNING,
                {"query": query, "offset": offset},
            )
        else:
            self._logger.warning("Loading products failed: %s", message)

    async def _end_session(self, reason: str) -> None:
        self._cancel_inflight(reason)
        self._generation += 1
        self.debouncer.cancel()
        self._set_state(ListState.LOGGED_OUT)
        self._publish_snapshot()
        await self._clear_credentials()
        self._emit_logged_out(reason)
        self._events.publish(SessionEndedEvent(reason=reason))

    async def _clear_credentials(self) -> None:
        try:
            await self._credentials.clear()
        except CredentialStoreError as exc:
            self._logger.error("Could not clear stored credential: %s", exc)

    def _on_session_ended(self, event: SessionEndedEvent) -> None:
        if self._closed:
            return
        self._cancel_inflight(event.reason)
        self._generation += 1
        self.debouncer.cancel()
        self._set_state(ListState.LOGGED_OUT)
        self._publish_snapshot()
        self._emit_logged_out(event.reason)

    def _emit_logged_out(self, reason: str) -> None:
        if self._logged_out_emitted:
            return
        self._logged_out_emitted = True
        self.logged_out.emit(reason)

    def _on_debounced_query(self, text: str) -> None:
        if self._closed or text == self._loader.query:
            return
        self.schedule(self.reset_and_fetch(text))

    def _is_current(self, generation: int, token: CancellationToken) -> bool:
        return (
            not self.disposed
            and generation == self._generation
            and self._inflight is token
            and not token.is_cancelled
        )

    def _cancel_inflight(self, reason: str) -> None:
        token, self._inflight = self._inflight, None
        if token is not None:
            token.cancel(reason)

    def _set_state(self, state: ListState) -> None:
        self.state.value = state
        self.loading.value = state is ListState.LOADING
        self.refreshing.value = state is ListState.REFRESHING

    def _sync_result_set(self) -> None:
        self.items.value = tuple(self._loader.items)
        self.has_more.value = self._loader.has_more
        self.query.value = self._loader.query

    def _publish_snapshot(self) -> None:
        if self.disposed:
            return
        self.snapshot_changed.emit(self.snapshot())
