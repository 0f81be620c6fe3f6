"""
Forwarder that lets many proposal publishers and subscribers meet on two known addresses
"""

import zmq

from ensemble.config import QueueConfig
from ensemble.logging import init_logger


class ProposalBroker:
    """
    XSUB/XPUB proxy.

    Publishers connect to the ``frontend`` , subscribers to the ``backend`` .
    Subscriptions are forwarded upstream so topic filtering still happens at the publisher.
    """

    def __init__(self, frontend: str, backend: str):
        self.frontend = frontend
        self.backend = backend
        self.context = zmq.Context()
        self.logger = init_logger("network.broker")

    @classmethod
    def from_config(cls, queue: QueueConfig | None = None) -> "ProposalBroker":
        if queue is None:
            from ensemble.config import config

            queue = config.queue
        return cls(frontend=queue.broker_frontend, backend=queue.broker_backend)

    def run(self) -> None:
        """
        Bind both sockets and forward until :meth:`.stop` is called. Blocks.
        """
        xsub = self.context.socket(zmq.XSUB)
        xpub = self.context.socket(zmq.XPUB)
        for socket in (xsub, xpub):
            socket.setsockopt(zmq.LINGER, 0)
        try:
            xsub.bind(self.frontend)
            xpub.bind(self.backend)
            self.logger.info("Forwarding proposals %s -> %s", self.frontend, self.backend)
            zmq.proxy(xsub, xpub)
        except zmq.ContextTerminated:
            self.logger.debug("Context terminated, broker stopping")
        finally:
            xsub.close()
            xpub.close()

    def stop(self) -> None:
        self.context.term()
