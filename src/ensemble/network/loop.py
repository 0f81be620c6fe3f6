import asyncio
import threading
from collections.abc import Callable

import zmq
from tornado.ioloop import IOLoop


class EventloopMixin:
    """
    Run a tornado :class:`~tornado.ioloop.IOLoop` in a background thread.

    The loop is created inside its thread, so sockets and periodic callbacks
    must be set up from a callback scheduled with :meth:`.call_soon` .
    """

    def __init__(self):
        self._context: zmq.Context | None = None
        self._loop: IOLoop | None = None
        self._quitting = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def context(self) -> zmq.Context:
        if self._context is None:
            self._context = zmq.Context.instance()
        return self._context

    @property
    def loop(self) -> IOLoop | None:
        return self._loop

    @property
    def loop_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start_loop(self, name: str | None = None) -> None:
        if self._thread is not None:
            raise RuntimeWarning("Event loop already started")

        self._quitting.clear()

        _ready = threading.Event()

        def _signal_ready() -> None:
            _ready.set()

        def _run() -> None:
            asyncio.set_event_loop(asyncio.new_event_loop())
            self._loop = IOLoop.current()
            if hasattr(self, "logger"):
                self.logger.debug("Starting eventloop")
            self._loop.add_callback(_signal_ready)
            try:
                self._loop.start()
            finally:
                self._loop.close(all_fds=False)
                self._loop = None
                if hasattr(self, "logger"):
                    self.logger.debug("Eventloop stopped")

        self._thread = threading.Thread(target=_run, name=name, daemon=True)
        self._thread.start()
        # wait until the loop has started
        _ready.wait(5)
        if hasattr(self, "logger"):
            self.logger.debug("Event loop started")

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` on the loop thread. Safe to call from any thread."""
        if self._loop is None:
            raise RuntimeError("Event loop is not running")
        self._loop.add_callback(callback)

    def stop_loop(self, timeout: float = 5) -> None:
        if self._thread is None:
            return
        self._quitting.set()
        if self._loop is not None:
            self._loop.add_callback(self._loop.stop)
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
