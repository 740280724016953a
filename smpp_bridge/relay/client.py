"""
Telegram Relay Client
=====================
Best-effort delivery of relay text to a Telegram chat via the Bot API.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import httpx
import structlog

from smpp_bridge.config import BridgeConfig
from smpp_bridge.metrics import BridgeMetrics, MetricNames, Timer

from .exceptions import RelayError

logger = structlog.get_logger(__name__)

# Field values starting with this marker name a local file to upload
FILE_MARKER = "@"

Files = Dict[str, Tuple[str, bytes]]


class TelegramRelayClient:
    """
    Sends text to the configured Telegram chat.

    Delivery is at-most-once: failures are logged and dropped, never raised
    and never retried.
    """

    def __init__(
        self,
        config: BridgeConfig,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[BridgeMetrics] = None,
    ):
        self.config = config
        self.metrics = metrics
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.relay_timeout),
            headers={"User-Agent": f"{config.name}/smpp-bridge"},
        )

    @property
    def url(self) -> str:
        return self._url(self.config.bot_key)

    def _url(self, key: str) -> str:
        base = self.config.api_base.rstrip("/")
        return f"{base}/{self.config.bot_id}:{key}/sendMessage"

    def build_fields(self, text: str) -> Dict[str, str]:
        """Form fields for a sendMessage call."""
        fields = {
            "chat_id": self.config.chat_id,
            "disable_web_page_preview": "true",
            "parse_mode": "HTML",
        }
        if self.config.topic_mode:
            fields["reply_to_message_id"] = self.config.chat_topic
        fields["text"] = text
        return fields

    @staticmethod
    def build_form(fields: Dict[str, str]) -> Tuple[Dict[str, str], Files]:
        """
        Split fields into plain form data and file parts.

        A value prefixed with ``@`` is read from the named file and sent as
        a file part under the same field name.

        Raises:
            RelayError: a referenced file can't be read
        """
        data: Dict[str, str] = {}
        files: Files = {}
        for key, value in fields.items():
            if not value.startswith(FILE_MARKER):
                data[key] = value
                continue
            path = Path(value[len(FILE_MARKER):])
            try:
                files[key] = (path.name, path.read_bytes())
            except OSError as e:
                raise RelayError(f"Can't read file {path}: {e}", field=key) from e
        return data, files

    async def relay(self, text: str) -> bool:
        """
        Send ``text`` to the configured chat.

        Returns:
            True if Telegram accepted the message
        """
        fields = self.build_fields(text)
        try:
            data, files = self.build_form(fields)
        except RelayError as e:
            logger.error("Error when building Telegram message form", error=str(e), field=e.field)
            self._record(False)
            return False

        if self.config.log_requests:
            logger.info(
                "Telegram API request",
                url=self._url("***"),
                fields=data,
                files=sorted(files),
            )

        try:
            with Timer(self.metrics, MetricNames.RELAY_DURATION):
                response = await self._client.post(
                    self.url,
                    data=data,
                    files=files or None,
                )
                body = response.text
        except httpx.HTTPError as e:
            logger.error(
                "Can't send message to Telegram",
                error=str(e),
                error_type=type(e).__name__,
            )
            self._record(False)
            return False

        if not response.is_success:
            logger.warning(
                "Unexpected answer from Telegram",
                status_code=response.status_code,
                body=body[:500],
            )
            self._record(False)
            return False

        self._record(True)
        return True

    def _record(self, success: bool) -> None:
        if self.metrics is not None:
            self.metrics.increment(MetricNames.RELAY_SENT if success else MetricNames.RELAY_FAILED)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
