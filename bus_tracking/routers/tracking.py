import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from bus_tracking import config
from bus_tracking.eta.ingest import ingest_sample
from bus_tracking.security import get_current_user, get_driver_user

logger = logging.getLogger(__name__)

router = APIRouter()

# Connected WebSocket clients receiving the live feed
connected_clients: List[WebSocket] = []


class TripStart(BaseModel):
    return_trip: bool = False

class LocationUpdate(BaseModel):
    latitude: float
    longitude: float
    speed: Optional[float] = None  # km/h
    speed_mps: Optional[float] = None
    timestamp: Optional[Union[float, str]] = None


def find_driver_bus(request: Request, driver_id: int) -> Dict[str, Any]:
    buses_db = request.app.state.db.buses_db
    assigned_bus = next((b for b in buses_db if b.get("assigned_driver_id") == driver_id), None)
    if not assigned_bus:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No bus assigned to this driver.")
    return assigned_bus

def get_active_trip(request: Request, bus_id: int):
    trip = request.app.state.db.trips.get(bus_id)
    if trip is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bus not found or not currently tracking")
    return trip


@router.post("/trips/start", tags=["Tracking"])
async def start_trip(request: Request, body: Optional[TripStart] = None, current_user: Any = Depends(get_driver_user)):
    body = body or TripStart()
    trips = request.app.state.db.trips
    if trips.for_driver(current_user["id"]) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Trip already active for this driver")

    bus = find_driver_bus(request, current_user["id"])
    if trips.get(bus["id"]) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Trip already active for this bus")
    route = request.app.state.db.routes.get(bus.get("route_id"))
    if route is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Route not found for assigned bus.")

    trip = trips.start(bus, route, driver_id=current_user["id"], return_trip=body.return_trip)
    return {
        "message": "Trip started successfully",
        "bus_id": trip.bus_id,
        "route_name": route.name,
        "return_trip": trip.return_trip,
        "waypoints": [wp.model_dump() for wp in trip.waypoints],
    }

@router.post("/trips/update", tags=["Tracking"])
async def update_trip_location(location: LocationUpdate, request: Request, current_user: Any = Depends(get_driver_user)):
    trips = request.app.state.db.trips
    trip = trips.for_driver(current_user["id"])
    if trip is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active trip for this driver. Start a trip first.")

    sample = ingest_sample(location.model_dump(exclude_none=True))
    if sample is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid position sample")

    evaluation = trip.apply_sample(sample)
    alert = trip.delay_alert(evaluation)
    if alert:
        trips.alerts.append(alert)
    return {
        "message": "Location updated successfully",
        "current_location": {"latitude": sample.latitude, "longitude": sample.longitude, "speed": sample.speed_kmh},
        **evaluation.model_dump(mode="json"),
    }

@router.post("/trips/end", tags=["Tracking"])
async def end_trip(request: Request, current_user: Any = Depends(get_driver_user)):
    trips = request.app.state.db.trips
    trip = trips.for_driver(current_user["id"])
    if trip is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active trip to end for this driver")
    trips.end(trip.bus_id)
    return {"message": "Trip ended successfully"}


@router.get("/bus/{bus_id}", tags=["Tracking"])
async def get_bus_status(bus_id: int, request: Request, current_user: Any = Depends(get_current_user)):
    trip = get_active_trip(request, bus_id)
    trip.evaluate()
    return trip.snapshot()

@router.get("/bus/{bus_id}/etas", tags=["Tracking"])
async def get_bus_etas(bus_id: int, request: Request, current_user: Any = Depends(get_current_user)):
    trip = get_active_trip(request, bus_id)
    evaluation = trip.evaluate()
    return [eta.model_dump(mode="json") for eta in evaluation.progress.per_waypoint_eta]

@router.get("/all", tags=["Tracking"])
async def get_all_buses_status(request: Request, current_user: Any = Depends(get_current_user)):
    return request.app.state.db.trips.refresh()


async def broadcast_bus_locations(app: Any):
    """Push a snapshot of every running trip to all WebSocket clients."""
    while True:
        trips = app.state.db.trips
        snapshots = trips.refresh()
        message = json.dumps({"bus_locations": snapshots, "alerts": trips.drain_alerts()})
        clients_to_remove = []
        for client in connected_clients:
            try:
                await client.send_text(message)
            except (WebSocketDisconnect, RuntimeError):
                clients_to_remove.append(client)
        for client in clients_to_remove:
            if client in connected_clients:
                connected_clients.remove(client)
        if clients_to_remove:
            logger.info("Dropped %d disconnected WebSocket client(s)", len(clients_to_remove))

        await asyncio.sleep(config.BROADCAST_INTERVAL_SECONDS)


@router.websocket("/ws/bus_locations")
async def websocket_bus_locations(websocket: WebSocket):
    await websocket.accept()
    connected_clients.append(websocket)
    try:
        # New clients get the current state straight away instead of waiting for the next tick
        await websocket.send_text(json.dumps({"bus_locations": websocket.app.state.db.trips.refresh(), "alerts": []}))
        while True:
            await websocket.receive_text()
    except (WebSocketDisconnect, RuntimeError):
        if websocket in connected_clients:
            connected_clients.remove(websocket)
