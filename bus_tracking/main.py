import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bus_tracking import config
from bus_tracking.routers import delays, tracking
from bus_tracking.utils.data_manager import load_data, load_routes
from bus_tracking.utils.trips import TripRegistry

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="College Bus Tracking API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Adjust this in production to your frontend's actual origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AppState:
    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = data_dir
        # Buses and routes are maintained by the admin tool; this service only reads them
        self.buses_db = load_data("buses", data_dir)
        self.routes = load_routes(data_dir)
        self.trips = TripRegistry()
        logger.info("Loaded %d buses and %d routes", len(self.buses_db), len(self.routes))

app.state.db = AppState()

app.include_router(tracking.router, prefix="/tracking")
app.include_router(delays.router, prefix="/delays")


@app.on_event("startup")
async def startup_event():
    asyncio.create_task(tracking.broadcast_bus_locations(app))


# --- Root endpoint ---
@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the College Bus Tracking API"}
