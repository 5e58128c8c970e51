"""Tests for ProductListViewModel: paging, search resets, races and session expiry."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest

from conftest import ManualGateway, ScriptedGateway, make_products, settle
from shelfview.domain.models import ListState
from shelfview.errors import RequestFailed, Unauthorized
from shelfview.errors.handler import ErrorHandler, ErrorOccurredEvent
from shelfview.events.bus import EventBus
from shelfview.events.session_events import (
    SESSION_EXPIRED,
    SESSION_LOGOUT,
    ProductsPageLoadedEvent,
    SessionEndedEvent,
)
from shelfview.gui.viewmodels.product_list_viewmodel import ProductListViewModel
from shelfview.infrastructure.repositories.memory_credential_store import MemoryCredentialStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_vm(gateway, token="tok", bus=None, **kwargs):
    credentials = MemoryCredentialStore(token)
    bus = bus or EventBus()
    vm = ProductListViewModel(
        gateway=gateway,
        credentials=credentials,
        event_bus=bus,
        **kwargs,
    )
    logouts = []
    vm.logged_out.connect(logouts.append)
    return vm, credentials, bus, logouts


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------


class TestPaging:
    @pytest.mark.asyncio
    async def test_three_pages_until_short_page(self):
        pages = [make_products(20, 0), make_products(20, 20), make_products(5, 40)]
        gateway = ScriptedGateway(*pages)
        vm, _, _, _ = _make_vm(gateway)

        await vm.start()
        await vm.fetch_more()
        await vm.fetch_more()

        snap = vm.snapshot()
        assert len(snap.items) == 45
        assert list(snap.items) == pages[0] + pages[1] + pages[2]
        assert snap.has_more is False
        assert vm.offset == 45
        assert snap.state is ListState.IDLE
        assert [r[1] for r in gateway.requests] == [0, 20, 40]
        assert all(r[2] == 20 for r in gateway.requests)

    @pytest.mark.asyncio
    async def test_has_more_flips_on_first_short_page(self):
        gateway = ScriptedGateway(make_products(20, 0), make_products(19, 20))
        vm, _, _, _ = _make_vm(gateway)

        await vm.start()
        assert vm.has_more.value is True
        await vm.fetch_more()

        assert vm.has_more.value is False
        assert vm.offset == 39

    @pytest.mark.asyncio
    async def test_fetch_more_is_noop_when_exhausted(self):
        gateway = ScriptedGateway(make_products(3))
        vm, _, _, _ = _make_vm(gateway)

        await vm.start()
        await vm.fetch_more()

        assert len(gateway.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_query_is_sent_as_no_filter(self):
        gateway = ScriptedGateway(make_products(2))
        vm, _, _, _ = _make_vm(gateway)

        await vm.start()

        assert gateway.requests == [(None, 0, 20)]

    @pytest.mark.asyncio
    async def test_fetch_more_is_noop_while_loading(self):
        gateway = ManualGateway()
        vm, _, _, _ = _make_vm(gateway)

        first = asyncio.create_task(vm.start())
        await settle()
        assert vm.loading.value is True
        await vm.fetch_more()

        assert len(gateway.calls) == 1
        gateway.calls[0].resolve(make_products(20))
        await first
        assert vm.loading.value is False

    @pytest.mark.asyncio
    async def test_page_loaded_event_published(self):
        bus = EventBus()
        seen = []
        bus.subscribe(ProductsPageLoadedEvent, seen.append)
        gateway = ScriptedGateway(make_products(20), make_products(4, 20))
        vm, _, _, _ = _make_vm(gateway, bus=bus)

        await vm.reset_and_fetch("soup")
        await vm.fetch_more()

        assert [(e.query, e.offset, e.count) for e in seen] == [("soup", 0, 20), ("soup", 20, 4)]


# ---------------------------------------------------------------------------
# Resets and races
# ---------------------------------------------------------------------------


class TestResets:
    @pytest.mark.asyncio
    async def test_reset_discards_previous_items(self):
        milk = make_products(7, 100, prefix="milk")
        gateway = ScriptedGateway(make_products(20), make_products(20, 20), milk)
        vm, _, _, _ = _make_vm(gateway)

        await vm.start()
        await vm.fetch_more()
        await vm.reset_and_fetch("  milk ")

        assert list(vm.items.value) == milk
        assert vm.offset == 7
        assert vm.query.value == "milk"
        assert gateway.requests[-1] == ("milk", 0, 20)

    @pytest.mark.asyncio
    async def test_later_reset_wins_race(self):
        gateway = ManualGateway()
        vm, _, _, _ = _make_vm(gateway)

        task_a = asyncio.create_task(vm.reset_and_fetch("a"))
        await settle()
        task_b = asyncio.create_task(vm.reset_and_fetch("b"))
        await settle()

        call_a, call_b = gateway.calls
        assert call_a.cancel_token.is_cancelled
        b_items = make_products(3, prefix="b")
        call_b.resolve(b_items)
        call_a.resolve(make_products(20, prefix="a"))
        await asyncio.gather(task_a, task_b)

        assert list(vm.items.value) == b_items
        assert vm.offset == 3
        assert vm.query.value == "b"

    @pytest.mark.asyncio
    async def test_late_response_ignored_when_transport_cannot_abort(self):
        gateway = ManualGateway(honor_cancel=False)
        vm, _, _, _ = _make_vm(gateway)

        task_a = asyncio.create_task(vm.reset_and_fetch("a"))
        await settle()
        task_b = asyncio.create_task(vm.reset_and_fetch("b"))
        await settle()

        call_a, call_b = gateway.calls
        b_items = make_products(2, prefix="b")
        call_b.resolve(b_items)
        await task_b
        call_a.resolve(make_products(20, prefix="a"))
        await task_a

        assert list(vm.items.value) == b_items
        assert vm.offset == 2
        assert vm.has_more.value is False
        assert vm.state.value is ListState.IDLE

    @pytest.mark.asyncio
    async def test_cancelled_fetch_more_produces_no_mutation(self):
        gateway = ManualGateway()
        vm, _, _, _ = _make_vm(gateway)

        start = asyncio.create_task(vm.start())
        await settle()
        gateway.calls[0].resolve(make_products(20))
        await start

        more = asyncio.create_task(vm.fetch_more())
        await asyncio.sleep(0.05)
        reset = asyncio.create_task(vm.reset_and_fetch("x"))
        await settle()

        stale_call, x_call = gateway.calls[1], gateway.calls[2]
        assert stale_call.offset == 20
        x_items = make_products(4, prefix="x")
        x_call.resolve(x_items)
        await reset
        stale_call.resolve(make_products(20, 20))
        await more

        assert list(vm.items.value) == x_items
        assert vm.offset == 4
        assert vm.error.value is None

    @pytest.mark.asyncio
    async def test_error_from_superseded_request_is_ignored(self):
        gateway = ManualGateway(honor_cancel=False)
        vm, _, _, _ = _make_vm(gateway)

        task_a = asyncio.create_task(vm.reset_and_fetch("a"))
        await settle()
        task_b = asyncio.create_task(vm.reset_and_fetch("b"))
        await settle()

        gateway.calls[1].resolve(make_products(1))
        await task_b
        gateway.calls[0].resolve(RequestFailed("boom", status=500))
        await task_a

        assert vm.error.value is None
        assert vm.state.value is ListState.IDLE

    @pytest.mark.asyncio
    async def test_unauthorized_from_superseded_request_only_clears_credential(self):
        gateway = ManualGateway(honor_cancel=False)
        vm, credentials, _, logouts = _make_vm(gateway)

        task_a = asyncio.create_task(vm.reset_and_fetch("a"))
        await settle()
        task_b = asyncio.create_task(vm.reset_and_fetch("b"))
        await settle()

        b_items = make_products(3, prefix="b")
        gateway.calls[1].resolve(b_items)
        await task_b
        gateway.calls[0].resolve(Unauthorized("Token expired or invalid"))
        await task_a

        assert await credentials.read() is None
        assert logouts == []
        assert list(vm.items.value) == b_items
        assert vm.error.value is None
        assert vm.state.value is ListState.IDLE


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_unauthorized_clears_credential_and_emits_logout(self):
        bus = EventBus()
        ended = []
        bus.subscribe(SessionEndedEvent, ended.append)
        first = make_products(20)
        gateway = ScriptedGateway(first, Unauthorized("Token expired or invalid"))
        vm, credentials, _, logouts = _make_vm(gateway, bus=bus)

        await vm.start()
        await vm.fetch_more()

        assert await credentials.read() is None
        assert logouts == [SESSION_EXPIRED]
        assert [e.reason for e in ended] == [SESSION_EXPIRED]
        assert list(vm.items.value) == first
        assert vm.offset == 20
        assert vm.has_more.value is True
        assert vm.error.value is None
        assert vm.state.value is ListState.LOGGED_OUT
        assert vm.loading.value is False

    @pytest.mark.asyncio
    async def test_logged_out_is_terminal_and_one_shot(self):
        gateway = ScriptedGateway(Unauthorized("Token absent"))
        vm, _, _, logouts = _make_vm(gateway, token=None)

        await vm.start()
        await vm.retry()
        await vm.fetch_more()
        await vm.logout()

        assert logouts == [SESSION_EXPIRED]
        assert len(gateway.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_next_page_keeps_loaded_items(self):
        first = make_products(20)
        gateway = ScriptedGateway(first, RequestFailed("GET /products failed (503)", status=503))
        vm, credentials, _, logouts = _make_vm(gateway)

        await vm.start()
        await vm.fetch_more()

        assert vm.state.value is ListState.ERROR
        assert vm.error.value == "GET /products failed (503)"
        assert list(vm.items.value) == first
        assert vm.offset == 20
        assert logouts == []
        assert await credentials.read() == "tok"

    @pytest.mark.asyncio
    async def test_retry_resets_with_current_query(self):
        again = make_products(5, prefix="again")
        gateway = ScriptedGateway(RequestFailed("timed out"), again)
        vm, _, _, _ = _make_vm(gateway)

        await vm.reset_and_fetch("tea")
        assert vm.state.value is ListState.ERROR

        await vm.retry()

        assert gateway.requests[-1] == ("tea", 0, 20)
        assert list(vm.items.value) == again
        assert vm.error.value is None
        assert vm.state.value is ListState.IDLE

    @pytest.mark.asyncio
    async def test_failures_routed_through_error_handler(self):
        bus = EventBus()
        events = []
        bus.subscribe(ErrorOccurredEvent, events.append)
        handler = ErrorHandler(Mock(), bus)
        gateway = ScriptedGateway(RequestFailed("bad gateway", status=502))
        vm, _, _, _ = _make_vm(gateway, bus=bus, error_handler=handler)

        await vm.start()

        assert len(events) == 1
        assert isinstance(events[0].error, RequestFailed)
        assert events[0].context == {"query": "", "offset": 0}


# ---------------------------------------------------------------------------
# Refresh, search input and scroll input
# ---------------------------------------------------------------------------


class TestUserInput:
    @pytest.mark.asyncio
    async def test_refresh_flags_refreshing_not_loading(self):
        gateway = ManualGateway()
        vm, _, _, _ = _make_vm(gateway)
        start = asyncio.create_task(vm.reset_and_fetch("jam"))
        await settle()
        gateway.calls[0].resolve(make_products(20))
        await start

        refresh = vm.on_pull_to_refresh()
        await settle()

        assert vm.refreshing.value is True
        assert vm.loading.value is False
        assert vm.state.value is ListState.REFRESHING
        assert vm.items.value == ()
        assert gateway.calls[1].query == "jam"
        assert gateway.calls[1].offset == 0

        gateway.calls[1].resolve(make_products(2))
        await refresh
        assert vm.refreshing.value is False
        assert len(vm.items.value) == 2

    @pytest.mark.asyncio
    async def test_typing_burst_issues_single_reset(self):
        gateway = ScriptedGateway(make_products(20), make_products(3, prefix="abc"))
        vm, _, _, _ = _make_vm(gateway)
        await vm.start()

        vm.on_query_changed("a")
        await asyncio.sleep(0.1)
        vm.on_query_changed("ab")
        await asyncio.sleep(0.1)
        vm.on_query_changed("abc")
        await asyncio.sleep(0.5)
        await settle()

        assert gateway.requests[1:] == [("abc", 0, 20)]
        assert vm.query.value == "abc"

    @pytest.mark.asyncio
    async def test_submit_runs_pending_search_without_waiting(self):
        gateway = ScriptedGateway(make_products(20), make_products(2, prefix="kiwi"))
        vm, _, _, _ = _make_vm(gateway, debounce_ms=10_000)
        await vm.start()

        vm.on_query_changed(" kiwi")
        vm.on_search_submitted()
        await settle()

        assert gateway.requests[1:] == [("kiwi", 0, 20)]
        assert vm.query.value == "kiwi"
        assert vm.debouncer.pending is False

        vm.on_search_submitted()
        await settle()
        assert len(gateway.requests) == 2

    @pytest.mark.asyncio
    async def test_unchanged_query_does_not_reset(self):
        gateway = ScriptedGateway(make_products(3))
        vm, _, _, _ = _make_vm(gateway, debounce_ms=10)
        await vm.reset_and_fetch("abc")

        vm.on_query_changed("abc ")
        await asyncio.sleep(0.05)
        await settle()

        assert len(gateway.requests) == 1

    @pytest.mark.asyncio
    async def test_clear_search_resets_immediately(self):
        gateway = ScriptedGateway(make_products(3), make_products(20))
        vm, _, _, _ = _make_vm(gateway, debounce_ms=10)
        await vm.reset_and_fetch("egg")
        vm.on_query_changed("eggs")

        task = vm.clear_search()
        await task
        await asyncio.sleep(0.05)

        assert gateway.requests == [("egg", 0, 20), (None, 0, 20)]
        assert vm.query.value == ""

    @pytest.mark.asyncio
    async def test_scroll_near_end_fetches_next_page(self):
        gateway = ScriptedGateway(make_products(20), make_products(20, 20))
        vm, _, _, _ = _make_vm(gateway)
        await vm.start()

        assert vm.on_scroll(0, 600, 2000) is False
        assert vm.on_scroll(1300, 600, 2000) is True
        await settle()

        assert len(vm.items.value) == 40
        assert gateway.requests[-1] == (None, 20, 20)

    @pytest.mark.asyncio
    async def test_scroll_does_not_fire_while_loading(self):
        gateway = ManualGateway()
        vm, _, _, _ = _make_vm(gateway)
        start = asyncio.create_task(vm.start())
        await settle()

        assert vm.on_scroll(1300, 600, 2000) is False
        assert len(gateway.calls) == 1

        gateway.calls[0].resolve(make_products(20))
        await start

    @pytest.mark.asyncio
    async def test_snapshot_changed_tracks_transitions(self):
        gateway = ScriptedGateway(make_products(2))
        vm, _, _, _ = _make_vm(gateway)
        snapshots = []
        vm.snapshot_changed.connect(snapshots.append)

        await vm.start()

        assert [s.state for s in snapshots] == [ListState.LOADING, ListState.IDLE]
        assert snapshots[0].loading is True
        assert len(snapshots[-1].items) == 2
        assert snapshots[-1].is_empty is False


# ---------------------------------------------------------------------------
# Session end and teardown
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_logout_pressed_cancels_and_clears(self):
        gateway = ManualGateway()
        bus = EventBus()
        ended = []
        bus.subscribe(SessionEndedEvent, ended.append)
        vm, credentials, _, logouts = _make_vm(gateway, bus=bus)
        start = asyncio.create_task(vm.start())
        await settle()

        await vm.on_logout_pressed()
        await start

        assert gateway.calls[0].cancel_token.is_cancelled
        assert await credentials.read() is None
        assert logouts == [SESSION_LOGOUT]
        assert [e.reason for e in ended] == [SESSION_LOGOUT]
        assert vm.state.value is ListState.LOGGED_OUT

    @pytest.mark.asyncio
    async def test_session_ended_elsewhere_closes_list(self):
        gateway = ScriptedGateway(make_products(20))
        vm, _, bus, logouts = _make_vm(gateway)
        await vm.start()

        bus.publish(SessionEndedEvent(reason=SESSION_LOGOUT))

        assert logouts == [SESSION_LOGOUT]
        assert vm.state.value is ListState.LOGGED_OUT
        assert vm.can_fetch_more() is False

    @pytest.mark.asyncio
    async def test_dispose_drops_inflight_response_and_pending_search(self):
        gateway = ManualGateway(honor_cancel=False)
        vm, credentials, _, logouts = _make_vm(gateway, debounce_ms=10)
        start = asyncio.create_task(vm.start())
        await settle()
        vm.on_query_changed("late")

        vm.dispose()
        gateway.calls[0].resolve(make_products(20))
        await start
        await asyncio.sleep(0.05)

        assert vm.items.value == ()
        assert len(gateway.calls) == 1
        assert logouts == []
        assert await credentials.read() == "tok"
        assert vm.on_pull_to_refresh() is None
