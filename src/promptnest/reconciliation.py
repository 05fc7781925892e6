"""
ReconciliationLoop: keeps host item markers in line with the RelationStore.

Two triggers:
- passive: the host reports a structural change (reorder, insert, delete,
  full re-render; all look the same). Bursts are coalesced by a single
  debounce timer that is cancelled and rescheduled on every notification.
- active: reconcile_now(), called right after a user mutation, runs a pass
  synchronously so the UI reacts immediately.

A pass writes markers onto host nodes, and the host reports those writes as
changes. To avoid reacting to its own output the loop sets a reentrancy guard
and disconnects from the host for the duration of the writes plus a settle
delay, then reconnects. A debounced pass that fires while the guard is set is
skipped but remembered (pass owed); exactly one follow-up pass is scheduled
when the guard clears.

Single-threaded: every entry point is expected on the host's event loop.
"""
import logging
from typing import List, Optional

from promptnest.errors import HostUnavailableError
from promptnest.host_list import HostList
from promptnest.relation_store import RelationStore
from promptnest.scheduling import Scheduler, TimerHandle, cancel_timer
from promptnest.visual_roles import PLAIN_MARKER, project_marker

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.2
DEFAULT_SETTLE_SECONDS = 0.1


class ReconciliationLoop:
    """Debounced, reentrancy-guarded projection of the relation onto the host list."""

    def __init__(
        self,
        store: RelationStore,
        host: HostList,
        scheduler: Scheduler,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    ):
        self.store = store
        self.host = host
        self.scheduler = scheduler
        self.debounce_seconds = debounce_seconds
        self.settle_seconds = settle_seconds

        self._started = False
        self._subscribed = False
        self._guard = False
        self._pass_owed = False
        self._debounce_handle: Optional[TimerHandle] = None
        self._settle_handle: Optional[TimerHandle] = None
        self._last_pass_revision: Optional[int] = None

        self.pass_count = 0
        self.skipped_count = 0

    # === Lifecycle ===

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def is_guarded(self) -> bool:
        return self._guard

    @property
    def is_subscribed(self) -> bool:
        return self._subscribed

    @property
    def has_pending_debounce(self) -> bool:
        return self._debounce_handle is not None

    def start(self) -> None:
        """Begin watching the host list (safe no-op while the host is absent)."""
        if self._started:
            return
        self._started = True
        self._subscribe()
        logger.debug(f"Reconciliation loop started (subscribed={self._subscribed})")

    def stop(self) -> None:
        """Stop watching, cancel both timers and reset the guard."""
        self._started = False
        cancel_timer(self._debounce_handle)
        cancel_timer(self._settle_handle)
        self._debounce_handle = None
        self._settle_handle = None
        self._guard = False
        self._pass_owed = False
        self._unsubscribe()
        logger.debug("Reconciliation loop stopped")

    def notify_host_ready(self) -> None:
        """Host rendered (or re-rendered) its list container; retry and reconcile."""
        if not self._started:
            return
        if not self._subscribed:
            self._subscribe()
        self._on_host_changed()

    # === Subscription ===

    def _subscribe(self) -> bool:
        if self._subscribed:
            return True
        if not self.host.is_available():
            logger.debug("Host list not available yet, subscription deferred")
            return False
        self.host.connect_listener(self._on_host_changed)
        self._subscribed = True
        return True

    def _unsubscribe(self) -> None:
        if not self._subscribed:
            return
        self.host.disconnect_listener(self._on_host_changed)
        self._subscribed = False

    # === Triggers ===

    def _on_host_changed(self) -> None:
        """Host change notification: (re)start the debounce window."""
        if not self._started:
            return
        cancel_timer(self._debounce_handle)
        self._debounce_handle = self.scheduler.call_later(self.debounce_seconds, self._on_debounce_expired)

    def _on_debounce_expired(self) -> None:
        self._debounce_handle = None
        if not self._started:
            return
        if self._guard:
            self._pass_owed = True
            self.skipped_count += 1
            logger.debug("RECONCILE: debounced pass skipped, guard set (pass owed)")
            return
        self._run_pass()

    def reconcile_now(self) -> bool:
        """Run a pass synchronously, bypassing the debounce window.

        While the guard is set the loop is already disconnected from the host,
        so the writes happen immediately and the settle window restarts.

        Returns:
            True if markers were written.
        """
        cancel_timer(self._debounce_handle)
        self._debounce_handle = None
        return self._run_pass()

    # === Pass ===

    def _run_pass(self) -> bool:
        if not self.host.is_available():
            logger.debug("RECONCILE: host list not available, pass deferred")
            return False

        self._guard = True
        self._unsubscribe()
        written = False
        try:
            self._write_markers()
            self._last_pass_revision = self.host.revision()
            written = True
            self.pass_count += 1
        except HostUnavailableError as e:
            logger.debug(f"RECONCILE: host disappeared during pass: {e}")
        finally:
            cancel_timer(self._settle_handle)
            self._settle_handle = self.scheduler.call_later(self.settle_seconds, self._on_settled)
        return written

    def _write_markers(self) -> List[str]:
        ids = self.host.item_ids()
        collapsed = self.store.collapsed
        for item_id in ids:
            self.host.apply_marker(item_id, project_marker(self.store, collapsed, item_id))
        logger.debug(f"RECONCILE: pass #{self.pass_count + 1} wrote markers for {len(ids)} items")
        return ids

    def _on_settled(self) -> None:
        """Settle delay elapsed: release the guard and reconnect."""
        self._settle_handle = None
        self._guard = False
        if not self._started:
            return
        self._subscribe()

        # Changes made while disconnected (including a re-render that wiped
        # markers without touching ids) are not replayed by the host.
        if (
            not self._pass_owed
            and self._last_pass_revision is not None
            and self.host.revision() != self._last_pass_revision
        ):
            self._pass_owed = True

        if self._pass_owed:
            self._pass_owed = False
            logger.debug("RECONCILE: guard cleared, scheduling owed pass")
            self._on_host_changed()

    def strip_markers(self) -> int:
        """Reset every host item to the plain marker (feature disabled).

        Returns:
            Number of items reset.
        """
        if not self.host.is_available():
            return 0
        was_subscribed = self._subscribed
        self._unsubscribe()
        try:
            ids = self.host.item_ids()
            for item_id in ids:
                self.host.apply_marker(item_id, PLAIN_MARKER)
        except HostUnavailableError as e:
            logger.debug(f"Host disappeared while stripping markers: {e}")
            return 0
        finally:
            if was_subscribed and self._started:
                self._subscribe()
        logger.debug(f"Stripped markers from {len(ids)} items")
        return len(ids)
