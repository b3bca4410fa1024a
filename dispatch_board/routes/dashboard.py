from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy import text

from ..services.resources import ABSENCES
from ..services.storage import run_storage
from ..services.time_rules import filter_same_day, local_now


router = APIRouter(tags=["dashboard"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Dispatch API is Online"


@router.get("/health")
async def health(request: Request):
    session_factory = request.app.state.session_factory

    def _ping():
        with session_factory() as db:
            db.execute(text("SELECT 1"))

    await run_storage(_ping, timeout=request.app.state.settings.storage_timeout_seconds, op="health")
    return {"status": "ok", "subscribers": request.app.state.hub.subscriber_count}


@router.get("/api/absences/today")
async def absences_today(request: Request):
    # Big-screen view: only absences dated today in the board's timezone
    service = request.app.state.services[ABSENCES.name]
    rows = await service.list()
    return filter_same_day(rows, local_now(request.app.state.settings.tz_default))
