"""Connectivity observation.

The platform layer pushes connectivity changes into a
:class:`ConnectivitySource`; :class:`NetworkMonitor` wraps any
:class:`ConnectivityProvider` and fans the state out to subscribers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

import aiohttp

from styleweather._constants import REACHABILITY_TIMEOUT, USER_AGENT
from styleweather.models.network import UNKNOWN_NETWORK_STATE, NetworkState, TransportType

_logger = logging.getLogger(__name__)

NetworkCallback = Callable[[NetworkState], None]


class ConnectivityProvider(Protocol):
    """Platform connectivity API: on-demand fetch plus change events."""

    async def fetch(self) -> NetworkState:
        ...

    def add_listener(self, callback: NetworkCallback) -> Callable[[], None]:
        ...


class HttpReachabilityProbe:
    """Confirm internet reachability with a lightweight HTTP GET.

    Any response below 400 counts as reachable; client errors and timeouts
    count as unreachable.  The probe never raises.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = REACHABILITY_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._external_session = session is not None
        self._session = session

    async def check(self) -> bool:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._external_session = False
        try:
            async with self._session.get(
                self._url,
                timeout=self._timeout,
                headers={"user-agent": USER_AGENT},
                allow_redirects=False,
            ) as resp:
                reachable = resp.status < 400
        except (aiohttp.ClientError, TimeoutError) as exc:
            _logger.debug("Reachability probe to %s failed: %s", self._url, exc)
            return False
        _logger.debug("Reachability probe to %s -> %s", self._url, reachable)
        return reachable

    async def close(self) -> None:
        if not self._external_session and self._session is not None:
            await self._session.close()
        self._session = None


class ConnectivitySource:
    """In-process connectivity provider fed by the platform layer.

    The platform calls :meth:`report` on every change, from any thread.
    When an event loop is bound, reports coming from other threads are
    handed over with ``call_soon_threadsafe`` so listeners always run on
    the loop.
    """

    def __init__(
        self,
        *,
        probe: HttpReachabilityProbe | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        initial: NetworkState = UNKNOWN_NETWORK_STATE,
    ) -> None:
        self._probe = probe
        self._loop = loop
        self._state = initial
        self._listeners: list[NetworkCallback] = []

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def report(
        self,
        connected: bool | None,
        *,
        reachable: bool | None = None,
        transport_type: TransportType | str = TransportType.UNKNOWN,
    ) -> None:
        """Record a platform connectivity event."""
        state = NetworkState(
            connected=connected,
            reachable=reachable,
            transport_type=TransportType(transport_type),
        )
        loop = self._loop
        if loop is None or loop.is_closed():
            self._publish(state)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._publish(state)
        else:
            loop.call_soon_threadsafe(self._publish, state)

    def _publish(self, state: NetworkState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.warning("Connectivity listener failed", exc_info=True)

    def add_listener(self, callback: NetworkCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    async def fetch(self) -> NetworkState:
        """Current state, resolving unknown reachability through the probe if one is attached."""
        state = self._state
        if self._probe is not None and state.connected is True and state.reachable is None:
            reachable = await self._probe.check()
            state = state.model_copy(update={"reachable": reachable})
            self._state = state
        return state


class NetworkMonitor:
    """Observe connectivity and notify subscribers.

    The last known state is private; consumers read it through
    :attr:`state`, :attr:`is_online` and :attr:`is_offline`, or receive it
    through :meth:`subscribe`.
    """

    def __init__(self, provider: ConnectivityProvider) -> None:
        self._provider = provider
        self._state: NetworkState = UNKNOWN_NETWORK_STATE
        self._subscribers: list[NetworkCallback] = []
        self._remove_listener: Callable[[], None] | None = None
        self._refresh_tasks: set[asyncio.Task[NetworkState]] = set()

    @property
    def state(self) -> NetworkState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def is_offline(self) -> bool:
        return self._state.is_offline

    @property
    def is_started(self) -> bool:
        return self._remove_listener is not None

    async def start(self) -> None:
        """Register with the provider and read the initial state."""
        if self._remove_listener is not None:
            return
        self._remove_listener = self._provider.add_listener(self._on_platform_state)
        await self.get_current_state()

    async def stop(self) -> None:
        remove = self._remove_listener
        self._remove_listener = None
        if remove is not None:
            remove()
        tasks = list(self._refresh_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def subscribe(self, callback: NetworkCallback) -> Callable[[], None]:
        """Deliver the current state now and on every later change.

        Returns a function that cancels the subscription.
        """
        self._subscribers.append(callback)
        self._deliver(callback, self._state)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def get_current_state(self) -> NetworkState:
        """Force a fresh read from the provider.

        Subscribers are notified only if the state changed.  A provider
        failure leaves the last known state in place.
        """
        try:
            fresh = await self._provider.fetch()
        except Exception:
            _logger.warning("Failed to refresh network status", exc_info=True)
            return self._state
        self._apply(fresh, force=False)
        return fresh

    def _on_platform_state(self, state: NetworkState) -> None:
        self._apply(state, force=True)
        if state.connected is True and state.reachable is None:
            # Interface is up but reachability is undetermined; let the provider resolve it.
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            task = loop.create_task(self.get_current_state())
            self._refresh_tasks.add(task)
            task.add_done_callback(self._refresh_tasks.discard)

    def _apply(self, state: NetworkState, *, force: bool) -> None:
        previous = self._state
        self._state = state
        changed = state != previous
        if changed:
            _logger.info(
                "Network status changed: connected=%s reachable=%s type=%s",
                state.connected,
                state.reachable,
                state.transport_type,
            )
            if state.is_online and not previous.is_online:
                _logger.info("Network is back online")
            elif previous.is_online and not state.is_online:
                _logger.info("Network went offline")
        if force or changed:
            for callback in list(self._subscribers):
                self._deliver(callback, state)

    @staticmethod
    def _deliver(callback: NetworkCallback, state: NetworkState) -> None:
        try:
            callback(state)
        except Exception:
            _logger.warning("Network subscriber callback failed", exc_info=True)
