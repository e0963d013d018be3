import logging

from twilio.rest import Client

from app.config import settings
from app.models.schemas import DiscoveryEvent

logger = logging.getLogger(__name__)

SMS_BODY_LIMIT = 1500


class SMSService:
    def __init__(self) -> None:
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        return self._client

    @property
    def configured(self) -> bool:
        return bool(settings.twilio_account_sid and settings.twilio_auth_token)

    async def send_sms(self, to_number: str, message: str) -> str | None:
        if not self.configured:
            logger.info(f"[SMS Mock] To: {to_number}, Message: {message}")
            return "mock_sid"

        try:
            result = self.client.messages.create(
                body=message,
                from_=settings.twilio_phone_number,
                to=to_number,
            )
            return result.sid
        except Exception as e:
            logger.error(f"Error sending SMS: {e}")
            return None

    async def send_appointment_alert(self, event: DiscoveryEvent) -> str | None:
        """
        Text the user that matching road test appointments were found.

        Returns:
            The message SID, "mock_sid" without Twilio credentials, or None if
            no recipient is configured or sending failed
        """
        if not settings.user_phone_number:
            logger.warning("USER_PHONE_NUMBER is not configured, skipping appointment alert")
            return None

        message = f"ICBC road test alert: {event.summary_message}"
        if len(message) > SMS_BODY_LIMIT:
            message = message[: SMS_BODY_LIMIT - 3] + "..."
        return await self.send_sms(settings.user_phone_number, message)


sms_service = SMSService()
