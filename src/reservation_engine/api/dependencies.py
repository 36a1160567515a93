"""FastAPI dependencies resolving lifespan-managed components from app.state."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from reservation_engine.config import Settings
from reservation_engine.services.reservation_service import ReservationService
from reservation_engine.services.retirement import RetirementScheduler


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_reservation_service(request: Request) -> ReservationService:
    return request.app.state.reservation_service


def get_retirement_scheduler(request: Request) -> RetirementScheduler | None:
    return getattr(request.app.state, "retirement_scheduler", None)


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ServiceDep = Annotated[ReservationService, Depends(get_reservation_service)]
RetirementDep = Annotated[RetirementScheduler | None, Depends(get_retirement_scheduler)]
