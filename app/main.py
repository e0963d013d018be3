import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api import appointments, health
from app.config import settings
from app.services.discovery_service import discovery_service
from app.services.sms_service import sms_service

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("selenium").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if not (settings.icbc_last_name and settings.icbc_licence_number and settings.icbc_keyword):
        logger.warning(
            "ICBC credentials are not fully configured. "
            "Set ICBC_LAST_NAME, ICBC_LICENCE_NUMBER and ICBC_KEYWORD before triggering a check."
        )

    if not sms_service.configured:
        logger.warning(
            "Twilio credentials not configured - appointment alerts will only be logged. "
            "Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN for real SMS delivery."
        )
    discovery_service.publisher.subscribe(sms_service.send_appointment_alert)

    yield

    discovery_service.publisher.unsubscribe(sms_service.send_appointment_alert)


app = FastAPI(
    title="ICBC Road Test Notifier",
    description="Finds released ICBC road test appointments matching your preferences",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(appointments.router)
