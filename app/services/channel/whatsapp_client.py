from typing import Optional, Tuple

import httpx
from pydantic import ValidationError

from app.errors import ExternalServiceError, is_transient_status
from app.logging_config import get_logger
from app.schemas.whatsapp import MediaInfo
from app.services.channel.base import ChannelClient
from app.services.deadline import Deadline, clamp_timeout
from app.services.retry import call_with_retry

logger = get_logger("channel.whatsapp")


class WhatsAppCloudClient(ChannelClient):
    """WhatsApp Cloud API over httpx, bearer-authenticated."""

    def __init__(self, access_token: str, phone_number_id: str, base_url: str, timeout_seconds: float = 30.0):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.phone_number_id}/messages"

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.access_token}"}

    def _request(
        self, hop: str, method: str, url: str, deadline: Optional[Deadline], idempotent: bool = True, **kwargs
    ) -> httpx.Response:
        """One HTTP call. Non-idempotent calls only retry failures where the request never left."""
        timeout = clamp_timeout(self.timeout_seconds, deadline, hop)
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.request(method, url, headers=self._headers(), **kwargs)
        except (httpx.ConnectTimeout, httpx.ConnectError) as e:
            raise ExternalServiceError(hop, f"connection failed: {e}", transient=True) from e
        except httpx.TimeoutException as e:
            raise ExternalServiceError(hop, f"timed out: {e}", transient=idempotent) from e
        except httpx.TransportError as e:
            raise ExternalServiceError(hop, f"transport error: {e}", transient=idempotent) from e

        logger.debug(f"WhatsApp {hop} response status: {response.status_code}")
        if not 200 <= response.status_code < 300:
            logger.error(
                f"WhatsApp {hop} failed",
                extra={"context": {"status": response.status_code, "body": response.text[:500]}},
            )
            raise ExternalServiceError(
                hop,
                f"request failed with status {response.status_code}",
                upstream_status=response.status_code,
                body=response.text,
                transient=is_transient_status(response.status_code),
            )
        return response

    def send(self, envelope: dict, deadline: Optional[Deadline] = None) -> dict:
        response = call_with_retry(
            self._request,
            "whatsapp.send",
            "POST",
            self.messages_url,
            deadline,
            idempotent=False,
            json=envelope,
            deadline=deadline,
        )
        try:
            return response.json()
        except ValueError:
            return {}

    def get_media_info(self, media_id: str, deadline: Optional[Deadline] = None) -> MediaInfo:
        hop = "whatsapp.media_info"
        response = call_with_retry(
            self._request, hop, "GET", f"{self.base_url}/{media_id}", deadline, deadline=deadline
        )
        try:
            return MediaInfo.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ExternalServiceError(hop, f"unexpected media metadata: {e}", body=response.text) from e

    def download_media(self, url: str, deadline: Optional[Deadline] = None) -> Tuple[bytes, Optional[str]]:
        response = call_with_retry(self._request, "whatsapp.media_download", "GET", url, deadline, deadline=deadline)
        return response.content, response.headers.get("Content-Type")
