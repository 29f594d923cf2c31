import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from bus_tracking.security import get_current_user, get_driver_user
from bus_tracking.utils.data_manager import load_data, save_data

logger = logging.getLogger(__name__)

router = APIRouter()


class DelayReport(BaseModel):
    reason: str = Field(min_length=1)
    duration: int = Field(gt=0)  # minutes
    notes: Optional[str] = None


def _driver_trip(request: Request, driver_id: int):
    trip = request.app.state.db.trips.for_driver(driver_id)
    if trip is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active trip for this driver. Start a trip first.")
    return trip


@router.post("/report", tags=["Delays"])
async def report_delay(report: DelayReport, request: Request, current_user: Any = Depends(get_driver_user)):
    trip = _driver_trip(request, current_user["id"])
    trip.manual_delay = {
        **report.model_dump(),
        "reported_by": current_user["id"],
        "reported_at": datetime.now().isoformat(),
    }
    db = request.app.state.db
    reports = load_data("delay_reports", db.data_dir)
    reports.append({"bus_id": trip.bus_id, "route_id": trip.route.id, **trip.manual_delay})
    save_data("delay_reports", reports, db.data_dir)
    db.trips.alerts.append({
        "type": "delay",
        "bus_id": trip.bus_id,
        "bus_number": trip.bus_number,
        "delay_minutes": report.duration,
        "reason": report.reason,
        "next_stop": trip.evaluate().verdict.next_stop,
    })
    logger.warning("Driver %s reported a %s min delay on bus %s: %s", current_user["id"], report.duration, trip.bus_id, report.reason)
    return {"message": "Delay reported successfully", "report": trip.manual_delay}

@router.post("/resolve", tags=["Delays"])
async def resolve_delay(request: Request, current_user: Any = Depends(get_driver_user)):
    trip = _driver_trip(request, current_user["id"])
    if trip.manual_delay is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bus is not currently delayed")
    trip.manual_delay = None
    logger.info("Delay on bus %s resolved", trip.bus_id)
    return {"message": "Delay resolved successfully"}

@router.get("", tags=["Delays"])
async def get_delayed_buses(request: Request, current_user: Any = Depends(get_current_user)):
    trips = request.app.state.db.trips
    trips.refresh()
    delayed = []
    for trip in trips.all():
        if not trip.is_delayed:
            continue
        verdict = trip.evaluation.verdict
        delayed.append({
            "bus_id": trip.bus_id,
            "bus_number": trip.bus_number,
            "route_name": trip.route.name,
            "delay_minutes": trip.manual_delay["duration"] if trip.manual_delay else verdict.delay_minutes,
            "reason": trip.manual_delay["reason"] if trip.manual_delay else verdict.reason,
            "next_stop": verdict.next_stop,
            "manual": trip.manual_delay is not None,
        })
    return delayed
