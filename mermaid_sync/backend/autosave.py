"""
Debounced downstream save of the diagram text.

Every text change (published from the graph or typed externally) re-arms the
save timer, so a burst of edits results in a single write once the editor
has been quiet for `delay` seconds.
"""

import logging
from pathlib import Path
from typing import Optional

from .scheduling import Debouncer, Scheduler

logger = logging.getLogger(__name__)


class AutoSaver:
    """Writes the latest diagram text to a file after a quiet period."""

    def __init__(self, scheduler: Scheduler, path: str | Path, delay: float = 2.0):
        self._path = Path(path)
        self._latest: Optional[str] = None
        self._saved: Optional[str] = None
        self._debouncer = Debouncer(scheduler, delay, self._save)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def load(self) -> Optional[str]:
        """Read previously saved text, if the file exists."""
        if not self._path.exists():
            return None
        text = self._path.read_text(encoding="utf-8")
        self._saved = text
        return text

    def schedule(self, text: str) -> None:
        """Remember the latest text and (re)arm the save timer."""
        self._latest = text
        self._debouncer.trigger()

    def flush(self) -> bool:
        """Write any pending text immediately."""
        return self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def _save(self) -> None:
        text = self._latest
        if text is None or text == self._saved:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError:
            logger.exception("Failed to save diagram to %s", self._path)
            return
        self._saved = text
        logger.info("Saved diagram to %s", self._path)
