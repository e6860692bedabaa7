from __future__ import annotations

from typing import Iterator, Protocol

import pydantic
import structlog
import zmq
from mimir_ingest.core.errors import ProtocolError, PublishError

from . import states as st

log = structlog.get_logger(__name__)


class Publisher(Protocol):
    def send(self, topic: str, payload: str) -> None: ...

    def close(self) -> None: ...


class ZmqPublisher:
    """
    PUB socket bound to `endpoint`; each send is one two-part message.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        context: zmq.Context | None = None,
        linger_ms: int = 1000,
    ) -> None:
        self.endpoint = endpoint
        ctx = context or zmq.Context.instance()
        try:
            sock = ctx.socket(zmq.PUB)
        except zmq.ZMQError as e:
            raise PublishError(f"Could not publish on endpoint '{endpoint}': {e}") from e

        sock.setsockopt(zmq.LINGER, linger_ms)
        try:
            sock.bind(endpoint)
        except zmq.ZMQError as e:
            sock.close()
            raise PublishError(f"Could not bind socket for publication on '{endpoint}': {e}") from e

        self._sock: zmq.Socket | None = sock

    def send(self, topic: str, payload: str) -> None:
        if self._sock is None:
            raise PublishError(f"Publisher on '{self.endpoint}' is closed")
        try:
            self._sock.send_multipart([topic.encode("utf-8"), payload.encode("utf-8")])
        except zmq.ZMQError as e:
            raise PublishError(f"Could not send on '{self.endpoint}': {e}") from e

    def close(self) -> None:
        if self._sock is None:
            return
        self._sock.close()
        self._sock = None


class Notifier:
    def __init__(self, publisher: Publisher, topic: str = "state") -> None:
        self.publisher = publisher
        self.topic = topic

    def publish(self, state: st.State) -> None:
        payload = st.encode_state(state)
        log.debug("state.publish", topic=self.topic, kind=state.kind)
        try:
            self.publisher.send(self.topic, payload)
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"Could not publish {state.kind}: {e}") from e

    def close(self) -> None:
        self.publisher.close()


def decode_message(parts: list[bytes]) -> st.State:
    if len(parts) < 2:
        raise ProtocolError(
            f"Expected [topic, state] multipart message, got {len(parts)} part(s)"
        )
    try:
        return st.decode_state(parts[1])
    except pydantic.ValidationError as e:
        raise ProtocolError(f"Could not deserialize state: {e}") from e


class StateSubscriber:
    """
    SUB socket filtered on `topic`. Iterating yields decoded states and stops
    after the first finishing state (NotAvailable, Available, Failure).
    """

    def __init__(
        self,
        endpoint: str,
        topic: str = "state",
        *,
        context: zmq.Context | None = None,
        recv_timeout_ms: int | None = None,
    ) -> None:
        ctx = context or zmq.Context.instance()
        sock = ctx.socket(zmq.SUB)
        sock.setsockopt(zmq.LINGER, 0)
        if recv_timeout_ms is not None:
            sock.setsockopt(zmq.RCVTIMEO, recv_timeout_ms)
        try:
            sock.connect(endpoint)
            sock.setsockopt(zmq.SUBSCRIBE, topic.encode("utf-8"))
        except zmq.ZMQError as e:
            sock.close()
            raise ProtocolError(f"Could not subscribe to '{topic}' on {endpoint}: {e}") from e

        self.endpoint = endpoint
        self.topic = topic
        self._sock = sock

    def recv(self) -> st.State:
        parts = self._sock.recv_multipart()
        return decode_message(parts)

    def poll(self, timeout_ms: int) -> st.State | None:
        """Wait up to `timeout_ms` for a state; None when nothing arrived."""
        if self._sock.poll(timeout_ms, zmq.POLLIN):
            return self.recv()
        return None

    def __iter__(self) -> Iterator[st.State]:
        while True:
            state = self.recv()
            yield state
            if st.is_finished(state):
                return

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "StateSubscriber":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
