"""Email relay service - Validate, enrich, deliver and log one outbound email"""

import asyncio
import logging
from typing import Optional

from ...auth import CallerIdentity, SupabaseAuthClient
from ...config import Settings
from ...errors import EmailRelayError, bad_request
from ...rate_limiter import SendRateLimiter
from ...shared.validators import is_valid_email_address, local_part
from ..activities.service import ActivityRecorder
from .formatting import format_email_body
from .provider import ResendClient, describe_provider_error
from .schemas import (
    BulkEmailFailure,
    BulkEmailResponse,
    EmailPreviewResponse,
    EmailSendRequest,
    EmailSendResult,
)

logger = logging.getLogger(__name__)


def validate_send_request(data: EmailSendRequest) -> None:
    """Reject incomplete requests and malformed recipients before any outbound call"""
    if not data.to or not data.subject or not data.body:
        raise bad_request("Missing required fields: to, subject, and body are required")

    if not is_valid_email_address(data.to):
        raise bad_request("Invalid email address format")


def build_provider_payload(data: EmailSendRequest, from_address: str, html: str) -> dict:
    """Resend payload; optional recipient keys are left out entirely when empty"""
    payload = {
        "from": from_address,
        "to": [data.to],
        "subject": data.subject,
        "html": html,
        "text": data.body,
    }
    if data.cc:
        payload["cc"] = data.cc
    if data.bcc:
        payload["bcc"] = data.bcc
    if data.replyTo:
        payload["reply_to"] = data.replyTo
    return payload


class EmailRelayService:
    """Service layer for the send-email relay (one delivery attempt, no retries)"""

    def __init__(
        self,
        settings: Settings,
        auth_client: SupabaseAuthClient,
        provider: Optional[ResendClient],
        recorder: ActivityRecorder,
        rate_limiter: SendRateLimiter,
    ):
        self.settings = settings
        self.auth_client = auth_client
        self.provider = provider
        self.recorder = recorder
        self.rate_limiter = rate_limiter

    def require_provider(self) -> ResendClient:
        if self.provider is None:
            logger.error("❌ No email service configured - RESEND_API_KEY missing")
            raise EmailRelayError(500, "Email service not configured")
        return self.provider

    async def resolve_sender(self, caller: CallerIdentity, override: Optional[str]) -> str:
        """
        Effective From header.

        An explicit override is used verbatim. Otherwise the display name comes
        from the caller's profile, then the local part of their email, then the
        product name.
        """
        if override:
            return override

        full_name = await self.auth_client.get_profile_name(caller.access_token, caller.id)
        sender_name = full_name or local_part(caller.email) or self.settings.product_name
        sender_email = caller.email or self.settings.fallback_sender_email
        return f"{sender_name} <{sender_email}>"

    def preview(self, body: str) -> EmailPreviewResponse:
        return EmailPreviewResponse(
            html=format_email_body(body, self.settings.footer_text),
            text=body,
        )

    async def send(self, data: EmailSendRequest, caller: CallerIdentity) -> EmailSendResult:
        """Relay one email; failures are raised as EmailRelayError"""
        validate_send_request(data)
        provider = self.require_provider()
        self.rate_limiter.enforce(caller.id)

        from_address = await self.resolve_sender(caller, data.sender)
        html = format_email_body(data.body, self.settings.footer_text)
        payload = build_provider_payload(data, from_address, html)

        logger.info(f"📧 Sending email via Resend to: {data.to} (subject: {data.subject})")
        response = await provider.send(payload)

        if not response.ok:
            logger.error(f"❌ Resend API Error (HTTP {response.status_code}): {response.data}")
            raise EmailRelayError(
                response.status_code,
                describe_provider_error(response.status_code, response.data),
                details=response.data,
            )

        message_id = response.message_id
        logger.info(f"✅ Email sent successfully via Resend, message id: {message_id}")

        outcome = await self.recorder.record_email_sent(
            subject=data.subject,
            to=data.to,
            message_id=message_id,
            user_id=caller.id,
            access_token=caller.access_token,
        )
        if not outcome.recorded:
            logger.warning(f"⚠️ Email {message_id} delivered without an activity record")

        return EmailSendResult(success=True, messageId=message_id, details=response.data)

    async def send_bulk(
        self, emails: list[EmailSendRequest], caller: CallerIdentity
    ) -> BulkEmailResponse:
        """Send each email in turn, collecting per-item failures instead of stopping"""
        if not emails:
            raise bad_request("No emails provided")
        if len(emails) > self.settings.bulk_send_max:
            raise bad_request(
                f"Too many emails in one request. Maximum is {self.settings.bulk_send_max}."
            )
        self.require_provider()

        sent: list[EmailSendResult] = []
        failed: list[BulkEmailFailure] = []

        for index, email in enumerate(emails):
            if index and self.settings.bulk_send_delay_ms:
                await asyncio.sleep(self.settings.bulk_send_delay_ms / 1000)
            try:
                sent.append(await self.send(email, caller))
            except EmailRelayError as e:
                failed.append(BulkEmailFailure(email=email, error=e.error))
            except Exception as e:
                logger.exception(f"❌ Bulk item to {email.to} failed: {e}")
                failed.append(BulkEmailFailure(email=email, error=str(e) or "Unknown error occurred"))

        logger.info(f"📬 Bulk send for {caller.id}: {len(sent)} sent, {len(failed)} failed")
        return BulkEmailResponse(success=sent, failed=failed)
