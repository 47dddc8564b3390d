from fastapi import FastAPI

from call_bot.delivery.web.routes import router
from call_bot.tracking.models import AssetClass
from call_bot.tracking.scheduler import TrackerScheduler


def create_app(trackers: dict[AssetClass, TrackerScheduler]) -> FastAPI:
    app = FastAPI(title="Call Bot Dashboard", version="0.1.0")
    app.state.trackers = trackers
    app.include_router(router)
    return app
