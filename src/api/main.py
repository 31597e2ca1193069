import logging
import os

from fastapi import FastAPI

from api import state
from api.dependencies import build_notification_service
from api.routers import calendar, ops, reminders, tasks

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="TaskMelt")

app.include_router(tasks.router)
app.include_router(reminders.router)
app.include_router(calendar.router)
app.include_router(ops.router)


@app.on_event("startup")
async def startup() -> None:
    state.notification_service = build_notification_service()
    logger.info(f"TaskMelt started (profile={os.getenv('DEPLOYMENT_PROFILE', 'unknown')})")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
