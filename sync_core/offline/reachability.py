# =============================================================================
# sync_core/offline/reachability.py
# Network Reachability Detection and Change Notifications
# =============================================================================
"""
ReachabilityMonitor - exposes a single "connected" boolean plus change callbacks.

Features:
- TCP probe against the Supabase host and well-known DNS resolvers
- Background monitoring thread, started/stopped explicitly or via `with`
- Callbacks delivered serially, only when the status changes
- Before the first probe completes the status is UNKNOWN, which is treated
  as connected so first-run flows are never blocked
"""

from __future__ import annotations
import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)


class ReachabilityStatus(Enum):
    """Reachability states."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"         # Initial state, assumed online


@dataclass
class ReachabilityState:
    """Current reachability with metadata."""
    status: ReachabilityStatus = ReachabilityStatus.UNKNOWN
    last_check: Optional[datetime] = None
    last_connected: Optional[datetime] = None
    consecutive_failures: int = 0
    forced: bool = False

    @property
    def is_connected(self) -> bool:
        return self.status is not ReachabilityStatus.DISCONNECTED


Probe = Callable[[], bool]
ReachabilityCallback = Callable[[ReachabilityState], None]


def tcp_probe(hosts: Iterable[Tuple[str, int]], timeout: float) -> bool:
    """Return True as soon as one host accepts a TCP connection."""
    for host, port in hosts:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            continue
    return False


def hosts_for(supabase_url: str, fallback: Iterable[Tuple[str, int]]) -> List[Tuple[str, int]]:
    """Probe the Supabase host first, then the fallback resolvers."""
    hosts: List[Tuple[str, int]] = []
    if supabase_url:
        parsed = urlparse(supabase_url)
        if parsed.hostname:
            hosts.append((parsed.hostname, parsed.port or 443))
    hosts.extend(fallback)
    return hosts


class ReachabilityMonitor:
    """
    Observes network reachability for one sync context.

    Usage:
        with ReachabilityMonitor(probe) as monitor:
            if monitor.is_connected:
                # Use remote services
            else:
                # Use local cache only
    """

    def __init__(
        self,
        probe: Probe,
        check_interval_online: float = 30.0,
        check_interval_offline: float = 10.0,
    ):
        self._probe = probe
        self._state = ReachabilityState()
        self._callbacks: List[ReachabilityCallback] = []
        self._state_lock = threading.Lock()
        self._dispatch_lock = threading.Lock()
        self._monitor_thread: Optional[threading.Thread] = None
        self._stop_monitoring = threading.Event()
        self.check_interval_online = check_interval_online
        self.check_interval_offline = check_interval_offline

    @classmethod
    def from_settings(cls, settings) -> ReachabilityMonitor:
        hosts = hosts_for(settings.supabase_url, settings.probe_hosts)
        timeout = settings.connection_timeout
        return cls(
            probe=lambda: tcp_probe(hosts, timeout),
            check_interval_online=settings.check_interval_online,
            check_interval_offline=settings.check_interval_offline,
        )

    @property
    def state(self) -> ReachabilityState:
        return self._state

    @property
    def status(self) -> ReachabilityStatus:
        return self._state.status

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_thread is not None and self._monitor_thread.is_alive()

    # =========================================================================
    # PROBING
    # =========================================================================

    def check_now(self) -> ReachabilityState:
        """
        Run the probe once and update state.

        A forced state (force_offline/force_online) is left untouched.
        """
        if self._state.forced:
            return self._state

        try:
            ok = bool(self._probe())
        except Exception as e:
            logger.debug(f"Reachability probe raised: {e}")
            ok = False

        now = datetime.now()
        with self._state_lock:
            self._state.last_check = now
            if ok:
                self._state.last_connected = now
                self._state.consecutive_failures = 0
            else:
                self._state.consecutive_failures += 1
        # an override set during the check wins
        self._set_status(
            ReachabilityStatus.CONNECTED if ok else ReachabilityStatus.DISCONNECTED,
            unless_forced=True,
        )
        return self._state

    def force_offline(self) -> None:
        """Pin the signal to disconnected (tests, user preference)."""
        self._set_status(ReachabilityStatus.DISCONNECTED, force=True)
        logger.info("Forced offline mode")

    def force_online(self) -> None:
        """Pin the signal to connected."""
        self._set_status(ReachabilityStatus.CONNECTED, force=True)
        logger.info("Forced online mode")

    def clear_override(self) -> None:
        """Return to probe-driven status."""
        with self._state_lock:
            self._state.forced = False

    def _set_status(self, status: ReachabilityStatus, force: bool = False, unless_forced: bool = False) -> None:
        with self._state_lock:
            if unless_forced and self._state.forced:
                return
            if force:
                self._state.forced = True
            old_status = self._state.status
            self._state.status = status
        if old_status != status:
            logger.info(f"Reachability changed: {old_status.value} -> {status.value}")
            self._notify_callbacks()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start background monitoring (one immediate check, then periodic)."""
        if self.is_monitoring:
            return

        self._stop_monitoring.clear()
        self._monitor_thread = threading.Thread(
            target=self._monitoring_loop,
            daemon=True,
            name="ReachabilityMonitor",
        )
        self._monitor_thread.start()
        logger.debug("Reachability monitoring started")

    def stop(self) -> None:
        """Stop background monitoring and release the thread."""
        self._stop_monitoring.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
            self._monitor_thread = None
        logger.debug("Reachability monitoring stopped")

    def __enter__(self) -> ReachabilityMonitor:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.stop()
        return False

    def _monitoring_loop(self) -> None:
        while not self._stop_monitoring.is_set():
            try:
                self.check_now()
            except Exception as e:
                logger.error(f"Error in reachability check: {e}")

            interval = (
                self.check_interval_online
                if self.is_connected
                else self.check_interval_offline
            )
            if self._stop_monitoring.wait(timeout=interval):
                break

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def register_callback(self, callback: ReachabilityCallback) -> None:
        """
        Register a callback for reachability changes.

        Args:
            callback: Function called with ReachabilityState when status changes
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: ReachabilityCallback) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        # One dispatch at a time: observers never run concurrently
        with self._dispatch_lock:
            for callback in list(self._callbacks):
                try:
                    callback(self._state)
                except Exception as e:
                    logger.error(f"Error in reachability callback: {e}")

    def get_status_display(self) -> dict:
        """Get status information for UI display."""
        return {
            "status": self._state.status.value,
            "is_connected": self.is_connected,
            "forced": self._state.forced,
            "last_check": self._state.last_check.isoformat() if self._state.last_check else None,
            "last_connected": self._state.last_connected.isoformat() if self._state.last_connected else None,
            "failures": self._state.consecutive_failures,
        }
