# --- auction_timer.py ---
import logging
import threading

logger = logging.getLogger(__name__)


class Countdown:
    """Seconds left on the current lot. Reaching zero reports expiry exactly once per reset."""

    def __init__(self, duration):
        self.duration = int(duration)
        self.remaining = int(duration)
        self._fired = False

    def reset(self):
        self.remaining = self.duration
        self._fired = False

    def tick(self):
        """Decrements by one second. Returns True only on the tick that reaches zero."""
        if self._fired:
            return False
        if self.remaining > 0:
            self.remaining -= 1
        if self.remaining == 0:
            self._fired = True
            return True
        return False

    def to_dict(self):
        return {"duration": self.duration, "remaining": self.remaining, "fired": self._fired}

    @classmethod
    def from_dict(cls, data):
        countdown = cls(data["duration"])
        countdown.remaining = int(data["remaining"])
        countdown._fired = bool(data.get("fired", False))
        return countdown


class Ticker:
    """Calls ``on_tick`` every ``interval`` seconds from a daemon thread until stopped.

    The callback should only enqueue work; the auction session applies ticks on its own
    worker in arrival order with every other event.
    """

    def __init__(self, on_tick, interval=1.0, name="auction-ticker"):
        self.on_tick = on_tick
        self.interval = interval
        self.name = name
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Ticker '%s' started (%.2fs)", self.name, self.interval)

    def _run(self):
        while not self._stop_event.wait(self.interval):
            try:
                self.on_tick()
            except Exception:
                logger.exception("Tick callback failed")

    def stop(self, timeout=None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Ticker '%s' stopped", self.name)
