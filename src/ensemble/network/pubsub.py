"""
Topic-based proposal broadcast over ZeroMQ XPUB/SUB sockets
"""

import threading
import time
from collections.abc import Callable

import zmq
from zmq.eventloop.zmqstream import ZMQStream

from ensemble.config import QueueConfig
from ensemble.logging import init_logger
from ensemble.network.loop import EventloopMixin
from ensemble.network.message import Message


class ProposalChannel(EventloopMixin):
    """
    Publisher and subscriber for a single message queue topic.

    - XPUB connects to ``publish_address`` (a broker's XSUB frontend, or a subscriber's bind)
    - SUB connects to ``subscribe_address`` and receives on its own eventloop thread

    Received frames are passed, undecoded, to the callback given to :meth:`.subscribe` .
    """

    def __init__(
        self,
        publish_address: str,
        subscribe_address: str,
        topic: str = "ensemble-tasks",
        context: zmq.Context | None = None,
        ready_timeout: float = 2.0,
    ):
        super().__init__()
        self.publish_address = publish_address
        self.subscribe_address = subscribe_address
        self.topic = topic
        self.ready_timeout = ready_timeout
        if context is not None:
            self._context = context
        self.logger = init_logger("network.pubsub")

        self._pub: zmq.Socket | None = None
        self._pub_ready = False
        self._pub_lock = threading.Lock()
        self._sub: ZMQStream | None = None
        self._callback: Callable[[list[bytes]], None] | None = None

    @classmethod
    def from_config(cls, queue: QueueConfig | None = None) -> "ProposalChannel":
        if queue is None:
            from ensemble.config import config

            queue = config.queue
        return cls(
            publish_address=queue.publish_address,
            subscribe_address=queue.subscribe_address,
            topic=queue.topic,
            ready_timeout=queue.ready_timeout,
        )

    @property
    def topic_bytes(self) -> bytes:
        return self.topic.encode("utf-8")

    @property
    def subscribed(self) -> bool:
        return self._callback is not None and self.loop_running

    def connect(self) -> bool:
        """
        Open the publishing socket and wait for a subscription to our topic.

        A PUB-side socket drops whatever it sends before a matching subscription
        reaches it, so the first message would otherwise be lost. The socket is an
        XPUB, which receives subscriptions as ``\\x01<prefix>`` frames:
        a broker's XSUB replays the subscriptions it holds to each new publisher,
        and a directly connected SUB sends its own.

        Returns:
            ``True`` if a subscriber for the topic was seen within ``ready_timeout`` ,
            ``False`` if there is (so far) nobody listening
        """
        with self._pub_lock:
            return self._connect()

    def _connect(self) -> bool:
        if self._pub is not None:
            return self._pub_ready
        self._pub = self.context.socket(zmq.XPUB)
        self._pub.setsockopt(zmq.LINGER, 1000)
        self._pub.connect(self.publish_address)
        self.logger.debug("Publisher connecting to %s", self.publish_address)

        deadline = time.monotonic() + self.ready_timeout
        while not self._pub_ready:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if self._pub.poll(int(remaining * 1000) + 1, zmq.POLLIN):
                self._handle_subscription(self._pub.recv())

        if self._pub_ready:
            self.logger.debug("Subscriber for %s is listening", self.topic)
        else:
            self.logger.warning(
                "No subscriber for %s on %s after %ss, messages may be dropped",
                self.topic,
                self.publish_address,
                self.ready_timeout,
            )
        return self._pub_ready

    def _handle_subscription(self, frame: bytes) -> None:
        # \x01 subscribes, \x00 unsubscribes, the rest is the topic prefix
        if frame[:1] == b"\x01" and self.topic_bytes.startswith(frame[1:]):
            self._pub_ready = True

    def _drain_subscriptions(self) -> None:
        while self._pub.poll(0, zmq.POLLIN):
            self._handle_subscription(self._pub.recv())

    def publish(self, msg: Message) -> None:
        """
        Send ``msg`` on the topic, connecting first if needed (see :meth:`.connect` )
        """
        with self._pub_lock:
            self._connect()
            self._drain_subscriptions()
            self._pub.send_multipart([self.topic_bytes, msg.to_bytes()])

    def subscribe(self, callback: Callable[[list[bytes]], None]) -> None:
        """
        Start receiving messages on the topic.

        Calling again replaces the callback without reconnecting.
        """
        self._callback = callback
        if not self.loop_running:
            self.start_loop(name=f"ensemble-{self.topic}")
            self.call_soon(self._init_subscriber)

    def _init_subscriber(self) -> None:
        if self._sub is not None:
            return
        sub = self.context.socket(zmq.SUB)
        sub.setsockopt(zmq.LINGER, 0)
        sub.connect(self.subscribe_address)
        sub.setsockopt(zmq.SUBSCRIBE, self.topic_bytes)
        self._sub = ZMQStream(sub, self.loop)
        self._sub.on_recv(self._on_recv)
        self.logger.debug("Subscribed to %s on %s", self.topic, self.subscribe_address)

    def _on_recv(self, frames: list[bytes]) -> None:
        callback = self._callback
        if callback is None:
            return
        callback(frames)

    def _close_subscriber(self) -> None:
        if self._sub is not None:
            self._sub.close()
            self._sub = None

    def close(self) -> None:
        if self.loop is not None:
            self.call_soon(self._close_subscriber)
        self.stop_loop()
        self._callback = None
        with self._pub_lock:
            if self._pub is not None:
                self._pub.close()
                self._pub = None
            self._pub_ready = False
