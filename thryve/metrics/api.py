# -*- coding: utf-8 -*-
"""Metrics: API endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from ..sharing.models import SharedOwner
from ..sharing.permissions import list_owners
from .models import Metric, MetricCreateRequest, MetricListResponse, MetricType, MetricUpdateRequest
from .storage import delete_metric, list_metrics, record_metric, update_metric

router = APIRouter(prefix="/api/metrics", tags=["Metrics"])


@router.post("", response_model=Metric, status_code=201, summary="Record a health reading")
def create_metric(request: MetricCreateRequest, user: dict = Depends(get_current_user)):
    row = record_metric(
        owner_id=user["id"],
        metric_type=request.metric_type,
        value=str(request.value),
        unit=request.unit,
        notes=request.notes,
        recorded_at=request.recorded_at,
    )
    return Metric(**row)


@router.get("", response_model=MetricListResponse, summary="List my readings")
def get_my_metrics(
    metric_type: Optional[MetricType] = Query(default=None),
    since: Optional[str] = Query(default=None),
    until: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    rows = list_metrics(
        viewer_id=user["id"],
        owner_id=user["id"],
        metric_type=metric_type,
        since=since,
        until=until,
        limit=limit,
        offset=offset,
    )
    return MetricListResponse(count=len(rows), items=[Metric(**r) for r in rows])


@router.get("/shared-owners", response_model=list[SharedOwner], summary="Owners whose readings I can view")
def get_shared_owners(user: dict = Depends(get_current_user)):
    return [SharedOwner(**row) for row in list_owners(viewer_id=user["id"])]


@router.get("/users/{owner_id}", response_model=MetricListResponse, summary="List another user's readings")
def get_user_metrics(
    owner_id: str,
    metric_type: Optional[MetricType] = Query(default=None),
    since: Optional[str] = Query(default=None),
    until: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    rows = list_metrics(
        viewer_id=user["id"],
        owner_id=owner_id,
        metric_type=metric_type,
        since=since,
        until=until,
        limit=limit,
        offset=offset,
    )
    return MetricListResponse(count=len(rows), items=[Metric(**r) for r in rows])


@router.patch("/{metric_id}", response_model=Metric, summary="Edit one of my readings")
def patch_metric(metric_id: str, request: MetricUpdateRequest, user: dict = Depends(get_current_user)):
    row = update_metric(owner_id=user["id"], metric_id=metric_id, changes=request.model_dump(exclude_unset=True))
    return Metric(**row)


@router.delete("/{metric_id}", summary="Delete one of my readings")
def remove_metric(metric_id: str, user: dict = Depends(get_current_user)):
    delete_metric(owner_id=user["id"], metric_id=metric_id)
    return {"status": "ok"}
