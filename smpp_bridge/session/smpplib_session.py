"""
smpplib Session Adapter
=======================
Persistent transceiver session on top of the blocking ``smpplib`` client.

The client's read loop runs on a daemon thread; inbound messages and link
events are handed over to the asyncio loop that called ``start()``.
"""

import asyncio
import threading
from typing import Any, Callable, Dict, Optional

import smpplib.client
import smpplib.consts
import smpplib.exceptions
import structlog

from smpp_bridge.messaging.encoding import encode_text
from smpp_bridge.messaging.models import SHORT_MESSAGE_LIMIT, InboundMessage, MessageKind

from .base import (
    EVENTS_CLOSED,
    ConnectionEvent,
    ConnectionStatus,
    MessageHandler,
    ShortMessage,
    SmppSession,
)
from .exceptions import NotConnectedError, SessionError, SubmitRejectedError, SubmitTimeoutError

logger = structlog.get_logger(__name__)

# registered_delivery: SMSC delivery receipt on final outcome
FINAL_DELIVERY_RECEIPT = 0x01

ClientFactory = Callable[[], Any]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("latin-1", errors="replace")
    return bytes(value)


def _status(pdu: Any) -> int:
    return int(getattr(pdu, "status", 0) or 0)


def _rejection(pdu: Any) -> SubmitRejectedError:
    status = _status(pdu)
    description = smpplib.consts.DESCRIPTIONS.get(status, "Unknown status")
    command = getattr(pdu, "command", "pdu")
    return SubmitRejectedError(f"({status}) {command}: {description}", status=status)


def message_from_pdu(pdu: Any) -> InboundMessage:
    """Convert an smpplib PDU into an InboundMessage."""
    try:
        kind = MessageKind(getattr(pdu, "command", ""))
    except ValueError:
        kind = MessageKind.OTHER
    return InboundMessage(
        kind=kind,
        source=_as_text(getattr(pdu, "source_addr", None)),
        destination=_as_text(getattr(pdu, "destination_addr", None)),
        data_coding=getattr(pdu, "data_coding", None),
        short_message=_as_bytes(getattr(pdu, "short_message", None)),
        message_payload=_as_bytes(getattr(pdu, "message_payload", None)),
        esm_class=int(getattr(pdu, "esm_class", 0) or 0),
    )


def submit_params(message: ShortMessage) -> Dict[str, Any]:
    """Keyword arguments for ``smpplib.client.Client.send_message``."""
    data_coding, encoded = encode_text(message.text)
    params: Dict[str, Any] = {
        "source_addr_ton": smpplib.consts.SMPP_TON_UNK,
        "source_addr_npi": smpplib.consts.SMPP_NPI_UNK,
        "source_addr": message.source,
        "dest_addr_ton": smpplib.consts.SMPP_TON_UNK,
        "dest_addr_npi": smpplib.consts.SMPP_NPI_UNK,
        "destination_addr": message.destination,
        "data_coding": data_coding,
        "registered_delivery": FINAL_DELIVERY_RECEIPT if message.register_receipt else 0,
    }
    if len(encoded) > SHORT_MESSAGE_LIMIT:
        params["short_message"] = b""
        params["message_payload"] = encoded
    else:
        params["short_message"] = encoded
    return params


class SmppLibSession(SmppSession):
    """
    Transceiver session with automatic reconnect.

    Every link transition is published as a ConnectionEvent. submit_sm_resp
    PDUs are matched to waiting submissions by sequence number.
    """

    def __init__(
        self,
        host: str,
        port: int,
        system_id: str,
        password: str,
        handler: MessageHandler,
        reconnect_delay: float = 5.0,
        response_timeout: float = 5.0,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.host = host
        self.port = port
        self.system_id = system_id
        self.password = password
        self.reconnect_delay = reconnect_delay
        self.response_timeout = response_timeout
        self._handler = handler
        self._client_factory = client_factory or (
            lambda: smpplib.client.Client(host, port, allow_unknown_opt_params=True)
        )

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: Optional["asyncio.Queue[Optional[ConnectionEvent]]"] = None
        self._thread: Optional[threading.Thread] = None
        self._client: Any = None
        self._connected = threading.Event()
        self._stopping = threading.Event()
        # Guards every socket write and the pending map, so a response can't
        # beat its registration
        self._lock = threading.RLock()
        self._pending: Dict[int, asyncio.Future] = {}

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    async def start(self) -> "asyncio.Queue[Optional[ConnectionEvent]]":
        if self._events is not None:
            return self._events
        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._thread = threading.Thread(target=self._run, name="smpp-session", daemon=True)
        self._thread.start()
        logger.info("SMPP session starting", host=self.host, port=self.port, system_id=self.system_id)
        return self._events

    # Listener thread

    def _publish(self, event: Optional[ConnectionEvent]) -> None:
        try:
            self._loop.call_soon_threadsafe(self._events.put_nowait, event)
        except RuntimeError:
            # Event loop already closed during interpreter shutdown
            logger.debug("Dropped SMPP status event", event=str(event))

    def _new_client(self) -> Any:
        client = self._client_factory()
        client.set_message_received_handler(self._on_message)
        client.set_message_sent_handler(self._on_submit_resp)
        client.set_error_pdu_handler(self._on_error_pdu)
        self._serialise_writes(client)
        return client

    def _serialise_writes(self, client: Any) -> None:
        # smpplib answers deliver_sm and enquire_link from the listener thread
        send_pdu = client.send_pdu

        def locked_send_pdu(pdu, *args, **kwargs):
            with self._lock:
                return send_pdu(pdu, *args, **kwargs)

        client.send_pdu = locked_send_pdu

    def _bind(self, client: Any) -> Optional[ConnectionEvent]:
        try:
            client.connect()
        except (smpplib.exceptions.ConnectionError, OSError) as e:
            return ConnectionEvent(ConnectionStatus.CONNECTION_FAILED, str(e) or type(e).__name__)
        try:
            client.bind_transceiver(system_id=self.system_id, password=self.password)
        except (smpplib.exceptions.PDUError, smpplib.exceptions.ConnectionError, OSError) as e:
            self._disconnect(client)
            return ConnectionEvent(ConnectionStatus.BIND_FAILED, str(e) or type(e).__name__)
        return None

    def _run(self) -> None:
        while not self._stopping.is_set():
            client = self._new_client()
            failure = self._bind(client)
            if failure is not None:
                self._publish(failure)
                self._stopping.wait(self.reconnect_delay)
                continue

            self._client = client
            self._connected.set()
            self._publish(ConnectionEvent(ConnectionStatus.CONNECTED))

            error: Optional[str] = None
            try:
                client.listen()
            except Exception as e:
                if not self._stopping.is_set():
                    logger.warning("SMPP read loop stopped", error=str(e), error_type=type(e).__name__)
                    error = str(e) or type(e).__name__
            finally:
                self._connected.clear()
                self._client = None
                self._fail_pending(NotConnectedError())
                self._disconnect(client)

            self._publish(ConnectionEvent(ConnectionStatus.DISCONNECTED, error))
            self._stopping.wait(self.reconnect_delay)

        self._publish(EVENTS_CLOSED)

    def _disconnect(self, client: Any) -> None:
        try:
            client.disconnect()
        except Exception as e:
            logger.debug("SMPP disconnect failed", error=str(e))

    def _on_message(self, pdu: Any, **kwargs) -> None:
        message = message_from_pdu(pdu)
        future = asyncio.run_coroutine_threadsafe(self._handler(message), self._loop)
        future.add_done_callback(self._log_handler_failure)

    @staticmethod
    def _log_handler_failure(future: "asyncio.Future") -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.error("Inbound message handler failed", error=str(future.exception()))

    def _on_submit_resp(self, pdu: Any, **kwargs) -> None:
        status = _status(pdu)
        if status != smpplib.consts.SMPP_ESME_ROK:
            # error_pdu_handler has normally settled it already
            self._resolve(pdu.sequence, error=_rejection(pdu))
            return
        message_id = _as_text(getattr(pdu, "message_id", None))
        self._resolve(pdu.sequence, result=message_id)

    def _on_error_pdu(self, pdu: Any, **kwargs) -> None:
        status = _status(pdu)
        if not self._resolve(getattr(pdu, "sequence", None), error=_rejection(pdu)):
            logger.warning("SMPP error PDU", command=getattr(pdu, "command", None), status=status)

    def _resolve(self, sequence: Any, result: Any = None, error: Optional[Exception] = None) -> bool:
        with self._lock:
            future = self._pending.pop(sequence, None)
        if future is None:
            return False
        self._loop.call_soon_threadsafe(_settle, future, result, error)
        return True

    def _fail_pending(self, error: Exception) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            self._loop.call_soon_threadsafe(_settle, future, None, error)

    # Submission

    def _send(self, client: Any, message: ShortMessage, future: asyncio.Future) -> int:
        params = submit_params(message)
        with self._lock:
            try:
                pdu = client.send_message(**params)
            except smpplib.exceptions.ConnectionError as e:
                raise NotConnectedError() from e
            except smpplib.exceptions.PDUError as e:
                if not self._connected.is_set():
                    raise NotConnectedError() from e
                raise SessionError(str(e), status=e.args[1] if len(e.args) > 1 else None) from e
            except OSError as e:
                raise NotConnectedError() from e
            self._pending[pdu.sequence] = future
            return pdu.sequence

    async def submit(self, message: ShortMessage) -> str:
        client = self._client
        if client is None or not self._connected.is_set():
            raise NotConnectedError()

        future = self._loop.create_future()
        sequence = await asyncio.to_thread(self._send, client, message, future)
        try:
            return await asyncio.wait_for(future, timeout=self.response_timeout)
        except asyncio.TimeoutError:
            raise SubmitTimeoutError(
                f"no submit_sm_resp within {self.response_timeout}s"
            ) from None
        finally:
            with self._lock:
                self._pending.pop(sequence, None)

    async def close(self) -> None:
        if self._stopping.is_set():
            return
        self._stopping.set()
        client = self._client
        if client is not None:
            await asyncio.to_thread(self._disconnect, client)
        if self._thread is not None:
            await asyncio.to_thread(self._thread.join, self.reconnect_delay + 1.0)
        logger.info("SMPP session closed")


def _settle(future: asyncio.Future, result: Any, error: Optional[Exception]) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
