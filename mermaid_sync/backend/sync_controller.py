"""
Synchronization Controller - keeps the text view and the graph view consistent.

The parser is lossy for positions and the serializer is lossy for anything
outside the recognized grammar, so naive two-way binding makes nodes jitter
on every graph edit. The controller runs an explicit two-state machine:

- IDLE: external text changes are parsed and replace the graph wholesale.
- SUPPRESSED: entered when a graph edit is published as text. Incoming text
  equal to the last published text is an echo and is dropped; any other text
  is queued and parsed once the controller settles back to IDLE.

The first edit in a quiet period is published immediately so the text view
reacts at once; further edits inside the settle window are coalesced into a
single trailing publish when the window closes. A burst that fits in one
window therefore yields two publishes (leading and trailing), not one per edit.

The settle delay is a debounce. Correctness comes from the echo comparison.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from ..core.models import Dialect, GraphModel
from ..core.parser import parse
from ..core.serializer import serialize
from .scheduling import Debouncer, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 0.1  # seconds


class SyncState(str, Enum):
    """Controller states."""
    IDLE = "idle"
    SUPPRESSED = "suppressed"


class SyncController:
    """
    Owns the displayed GraphModel and decides which transform runs.

    Features:
    - Full re-parse on external text, keeping positions of known node IDs
    - Serialize-and-publish on graph edits, with echo suppression
    - Bursts of edits coalesce into one trailing publish per settle window
    - Listener callbacks for graph replacement and text publication
    """

    def __init__(
        self,
        scheduler: Scheduler,
        dialect: "Dialect | str" = Dialect.FLOWCHART,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ):
        self._dialect = Dialect.coerce(dialect)
        self._graph = GraphModel(dialect=self._dialect)
        self._text = ""
        self._version = 0
        self._revision = 0
        self._state = SyncState.IDLE
        self._last_published: Optional[str] = None
        self._pending_text: Optional[str] = None
        self._dirty = False
        self._settle = Debouncer(scheduler, settle_delay, self._on_settle)
        self._on_graph_replaced_callbacks: list[Callable[[GraphModel], None]] = []
        self._on_text_published_callbacks: list[Callable[[str], None]] = []

    # --- Properties ---

    @property
    def graph(self) -> GraphModel:
        """The currently displayed graph model."""
        return self._graph

    @property
    def text(self) -> str:
        """The text the graph currently corresponds to."""
        return self._text

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def version(self) -> int:
        """Incremented every time the graph model is replaced wholesale."""
        return self._version

    @property
    def revision(self) -> int:
        """Incremented on every re-parse and every publish, so each event has its own number."""
        return self._revision

    @property
    def last_published(self) -> Optional[str]:
        return self._last_published

    @property
    def pending_text(self) -> Optional[str]:
        """External text queued while suppressed, if any."""
        return self._pending_text

    # --- Listeners ---

    def on_graph_replaced(self, callback: Callable[[GraphModel], None]):
        """Register a callback run with the new model after every re-parse."""
        self._on_graph_replaced_callbacks.append(callback)

    def on_text_published(self, callback: Callable[[str], None]):
        """Register a callback run with the text produced from a graph edit."""
        self._on_text_published_callbacks.append(callback)

    def _notify(self, callbacks: list[Callable], payload) -> None:
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                # Render/persistence collaborators must not break the engine
                logger.exception("Sync listener %r failed", callback)

    # --- Events ---

    def external_text_changed(self, text: str) -> bool:
        """
        Handle text supplied by the text view or another external source.

        Returns:
            True if the text was parsed into a new graph model now
        """
        if self._state is SyncState.SUPPRESSED:
            if text == self._last_published:
                logger.debug("Dropped echo of published text")
                # The view is back on the published text; anything queued is stale
                self._pending_text = None
                return False
            logger.info("External edit while suppressed, queued until idle")
            self._pending_text = text
            return False

        if text == self._text:
            return False

        self._replace_from_text(text)
        return True

    def graph_edited(self) -> None:
        """
        Handle a completed graph editing operation.

        The first edit in a quiet period publishes immediately; later edits
        inside the settle window are published once when the window closes.
        """
        if self._state is SyncState.IDLE:
            self._state = SyncState.SUPPRESSED
            self._publish()
        else:
            self._dirty = True
        self._settle.trigger()

    def reset(self, dialect: "Dialect | str", text: str = "") -> GraphModel:
        """
        Start over with a (possibly different) dialect.

        The dialect of a model never changes in place, so this always builds
        a fresh model. Pending settles and queued text are discarded.
        """
        self._settle.cancel()
        self._state = SyncState.IDLE
        self._pending_text = None
        self._last_published = None
        self._dirty = False
        self._dialect = Dialect.coerce(dialect)
        self._graph = parse(text, self._dialect) if text else GraphModel(dialect=self._dialect)
        self._text = text
        self._version += 1
        self._revision += 1
        self._notify(self._on_graph_replaced_callbacks, self._graph)
        return self._graph

    def flush(self) -> None:
        """Settle immediately, publishing any coalesced edits."""
        while self._settle.flush():
            pass

    # --- Internals ---

    def _replace_from_text(self, text: str) -> None:
        known_positions = self._graph.node_positions()
        self._graph = parse(text, self._dialect, known_positions=known_positions)
        self._text = text
        self._version += 1
        self._revision += 1
        logger.debug("Re-parsed text into graph version %d", self._version)
        self._notify(self._on_graph_replaced_callbacks, self._graph)

    def _publish(self) -> None:
        text = serialize(self._graph, self._dialect)
        self._dirty = False
        self._last_published = text
        self._text = text
        self._revision += 1
        self._notify(self._on_text_published_callbacks, text)

    def _on_settle(self) -> None:
        if self._dirty:
            self._publish()
            self._settle.trigger()
            return

        self._state = SyncState.IDLE
        pending, self._pending_text = self._pending_text, None
        if pending is not None and pending != self._text:
            self._replace_from_text(pending)
