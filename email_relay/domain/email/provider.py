"""Resend transactional email API client"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ...errors import EmailRelayError

logger = logging.getLogger(__name__)


@dataclass
class ProviderResponse:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def message_id(self) -> Optional[str]:
        if isinstance(self.data, dict) and self.data.get("id") is not None:
            return str(self.data["id"])
        return None


def describe_provider_error(status_code: int, data: Any) -> str:
    """
    Pick the error message for a failed provider call.

    The provider's own message wins; otherwise known status codes get a
    fixed explanation.
    """
    if isinstance(data, dict):
        if data.get("message"):
            return str(data["message"])
        if isinstance(data.get("error"), str) and data["error"]:
            return data["error"]

    if status_code == 401:
        return "Invalid API key. Please check your Resend configuration."
    if status_code == 429:
        return "Rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "Email service temporarily unavailable. Please try again later."
    return "Failed to send email"


class ResendClient:
    """Single-shot sender for the Resend /emails endpoint (no retries)"""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def send(self, payload: dict) -> ProviderResponse:
        """
        POST the payload to Resend.

        Returns the provider's status and parsed JSON body for both success
        and error replies. Raises EmailRelayError when the provider cannot be
        reached (502) or replies with something that is not JSON.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ Network error when calling Resend API: {e}")
            raise EmailRelayError(
                502,
                "Network error: Unable to connect to email service.",
                details={"reason": str(e)},
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"❌ Failed to parse Resend response as JSON (HTTP {response.status_code})")
            raise EmailRelayError(
                response.status_code if response.status_code >= 400 else 502,
                f"Invalid response from email service. Status: {response.status_code}",
                details={"status": response.status_code, "responseText": response.text},
            ) from e

        return ProviderResponse(status_code=response.status_code, data=data)
