"""
WhatsApp booking confirmations.

Posts a templated message request ({to, contentSid, contentVariables}) to
the messaging function configured in NOTIFICATION_FUNCTION_URL, which
relays it through Twilio. Sending is best-effort: every failure is
reported through the return value and a log line, never raised.
"""

import logging
from typing import Optional

import httpx

from grooming_scheduler.config import NotificationConfig, settings
from grooming_scheduler.models import Booking, Location
from grooming_scheduler.utils import to_e164

logger = logging.getLogger(__name__)


class WhatsAppNotifier:
    """Sends booking confirmations to customers."""

    def __init__(
        self,
        config: Optional[NotificationConfig] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or settings.notifications
        self._client = client

    def build_payload(self, booking: Booking, location: Location) -> dict:
        """Build the request body for the confirmation template."""
        slot_time = booking.slot_time.strftime("%I:%M %p") if booking.slot_time else ""
        return {
            "to": to_e164(booking.contact_number, self.config.default_country_code),
            "contentSid": self.config.content_sid,
            "contentVariables": {
                "1": booking.customer_name,
                "2": f"{booking.booking_date.day} {booking.booking_date:%B %Y}",
                "3": location.name,
                "4": slot_time,
                "5": booking.pet_name,
                "6": booking.pet_breed,
                "7": location.directions or "Contact shop for directions",
            },
        }

    def send_booking_confirmation(
        self, booking: Booking, location: Location
    ) -> tuple[bool, Optional[str]]:
        """
        Send the confirmation for a newly created booking.

        Returns:
            Tuple of (success, error_message).
        """
        if not self.config.enabled:
            logger.debug("Notifications disabled; skipping booking %d", booking.id)
            return False, "Notifications disabled"
        if not booking.contact_number:
            return False, "No contact number"

        payload = self.build_payload(booking, location)
        try:
            if self._client is not None:
                response = self._client.post(
                    self.config.function_url, json=payload, timeout=self.config.timeout_sec
                )
            else:
                response = httpx.post(
                    self.config.function_url, json=payload, timeout=self.config.timeout_sec
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Confirmation for booking %d rejected: HTTP %d",
                booking.id, exc.response.status_code,
            )
            return False, f"HTTP {exc.response.status_code}"
        except httpx.HTTPError as exc:
            logger.warning("Confirmation for booking %d failed: %s", booking.id, exc)
            return False, str(exc)

        logger.info("Confirmation sent for booking %d to %s", booking.id, payload["to"])
        return True, None
