# --- auction_session.py ---
import logging
import queue
import threading
from concurrent.futures import Future

from auction_errors import AuctionError
from auction_models import AuctionStatus
from auction_timer import Ticker

logger = logging.getLogger(__name__)

_STOP = object()

# queue action -> engine method
_ENGINE_ACTIONS = {
    "start": "start",
    "bid": "place_bid",
    "tick": "tick",
    "timer_expired": "on_timer_expired",
    "skip": "skip",
    "complete": "complete_auction",
}


class AuctionSession:
    """Serialises every input to one engine through a single FIFO queue.

    Operator actions and ticks from the background ``Ticker`` are applied one at a time
    in arrival order, so a bid and the expiry of the same player can never interleave.
    Each posted event gets a ``Future`` with the engine's return value or exception.
    """

    def __init__(self, engine, store=None, on_change=None):
        self.engine = engine
        self.store = store
        self.on_change = on_change
        self.lock = threading.RLock()
        self._events = queue.Queue()
        self._worker = None
        self._ticker = None

    # --- posting ---
    def post(self, action, *args, **kwargs):
        if action not in _ENGINE_ACTIONS:
            raise ValueError(f"Unknown auction action '{action}'.")
        future = Future()
        self._events.put((action, args, kwargs, future))
        return future

    def call(self, action, *args, timeout=5.0, **kwargs):
        """Posts and waits. Without a running worker the queue is drained on this thread."""
        future = self.post(action, *args, **kwargs)
        if not self.running:
            self.process_pending()
        return future.result(timeout)

    # --- processing ---
    def process_next(self, block=False, timeout=None):
        try:
            item = self._events.get(block=block, timeout=timeout)
        except queue.Empty:
            return False
        if item is _STOP:
            return False
        self._handle(item)
        return True

    def _handle(self, item):
        action, args, kwargs, future = item
        if not future.set_running_or_notify_cancel():
            return
        try:
            with self.lock:
                result = getattr(self.engine, _ENGINE_ACTIONS[action])(*args, **kwargs)
                changed = self._persist(action, result)
        except AuctionError as e:
            logger.warning("Event '%s' refused: %s", action, e)
            future.set_exception(e)
        except Exception as e:
            logger.exception("Event '%s' failed", action)
            future.set_exception(e)
        else:
            future.set_result(result)
            if self.on_change is not None and (changed or (action == "tick" and self.engine.status is AuctionStatus.ACTIVE)):
                try:
                    self.on_change(self)
                except Exception:
                    logger.exception("Change callback failed after '%s'", action)

    def process_pending(self):
        processed = 0
        while self.process_next():
            processed += 1
        return processed

    def _persist(self, action, result):
        description = self._describe(action, result)
        if description and self.store is not None:
            try:
                self.store.save(self.engine.to_snapshot(), description)
            except AuctionError as e:
                logger.warning("Snapshot not saved after %s: %s", description, e)
        return description is not None

    def _describe(self, action, result):
        """Log line for a state-changing event; None for rejected bids and plain countdown ticks."""
        if action == "start":
            return "AUCTION_STARTED"
        if action == "bid":
            if not result.ok:
                return None
            bid = result.bid
            return f"BID: {bid.team_id} {bid.amount} for {bid.player_id}"
        if action == "complete":
            return f"AUCTION_COMPLETED_BY_OPERATOR ({len(result)} unsold)"
        if result is None:
            return None
        # tick / timer_expired / skip resolved a player
        line = f"{result.outcome.value.upper()}: {result.player.id}"
        if result.team_id:
            line += f" to {result.team_id} for {result.price}"
        if result.requeued:
            line += " (requeued)"
        if result.status is AuctionStatus.COMPLETED:
            line += " | AUCTION_COMPLETED"
        return line

    # --- threads ---
    @property
    def running(self):
        return self._worker is not None and self._worker.is_alive()

    def start(self, tick_interval=None):
        if self.running:
            return
        self._worker = threading.Thread(target=self._run, name="auction-session", daemon=True)
        self._worker.start()
        interval = tick_interval if tick_interval is not None else self.engine.config.tick_interval_seconds
        self._ticker = Ticker(lambda: self.post("tick"), interval=interval)
        self._ticker.start()
        logger.info("Auction session started for '%s'", self.engine.auction_name)

    def _run(self):
        while True:
            item = self._events.get()
            if item is _STOP:
                break
            self._handle(item)

    def stop(self, timeout=2.0):
        if self._ticker is not None:
            self._ticker.stop(timeout)
            self._ticker = None
        if self._worker is not None:
            self._events.put(_STOP)
            self._worker.join(timeout)
            self._worker = None
            logger.info("Auction session stopped")

    # --- read side ---
    def snapshot(self):
        with self.lock:
            return self.engine.to_snapshot()

    def read(self, fn):
        """Runs ``fn(engine)`` under the session lock for consistent reads from other threads."""
        with self.lock:
            return fn(self.engine)
