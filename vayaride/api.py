"""
Admin API — FastAPI app served next to the bots in the same process.

Approval has to reach the driver bot's in-memory conversation state, so the
app is built around the running bot and its session store.
"""

from aiogram import Bot
from fastapi import FastAPI

from vayaride import __version__
from vayaride.routers import drivers
from vayaride.services.sessions import SessionStore


def create_app(driver_bot: Bot, sessions: SessionStore) -> FastAPI:
    app = FastAPI(
        title="VayaRide Admin API",
        description="Driver review and dashboard PIN verification",
        version=__version__,
    )
    app.state.driver_bot = driver_bot
    app.state.sessions = sessions

    app.include_router(drivers.router, prefix="/api/drivers", tags=["Drivers"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "VayaRide"}

    return app
