"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import ExporterStatus
from services.collector import CollectionService, build_default_collector

router = APIRouter()


def get_collector() -> CollectionService:
    return build_default_collector()


@router.get(
    "/metrics",
    summary="Prometheus exposition of the latest sensor readings.",
    response_class=Response,
)
async def metrics(
    collector: CollectionService = Depends(get_collector),
) -> Response:
    registry = collector.registry
    return Response(content=registry.render(), media_type=registry.content_type)


@router.get(
    "/health",
    response_model=ExporterStatus,
    summary="Collector status and last collection cycle.",
)
async def healthcheck(
    collector: CollectionService = Depends(get_collector),
) -> ExporterStatus:
    report = collector.status()
    if not report.running:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor collection is not running.",
        )
    return report


@router.get(
    "/",
    summary="Root endpoint points at the metrics path.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /metrics for sensor readings."}
