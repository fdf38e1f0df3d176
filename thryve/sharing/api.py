# -*- coding: utf-8 -*-
"""Sharing: API endpoints (reading requests, viewers, owners)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .models import ReadingRequest, ReadingRequestCreate, ReadingRequestRespond, RequestStatus, SharedOwner, Viewer
from .permissions import list_owners, list_viewers, revoke, set_status
from .requests import (
    cancel_request,
    create_request,
    create_request_by_email,
    list_incoming,
    list_outgoing,
    respond,
)

router = APIRouter(prefix="/api/sharing", tags=["Sharing"])


@router.post("/requests", response_model=ReadingRequest, status_code=201, summary="Ask to view someone's readings")
def post_request(request: ReadingRequestCreate, user: dict = Depends(get_current_user)):
    if request.owner_id:
        row = create_request(requester_id=user["id"], owner_id=request.owner_id, message=request.message)
    else:
        row = create_request_by_email(
            requester_id=user["id"], owner_email=str(request.owner_email), message=request.message
        )
    return ReadingRequest(**row)


@router.get("/requests/incoming", response_model=list[ReadingRequest], summary="Requests to view my readings")
def get_incoming(status: Optional[RequestStatus] = Query(default=None), user: dict = Depends(get_current_user)):
    return [ReadingRequest(**row) for row in list_incoming(owner_id=user["id"], status=status)]


@router.get("/requests/outgoing", response_model=list[ReadingRequest], summary="Requests I have sent")
def get_outgoing(status: Optional[RequestStatus] = Query(default=None), user: dict = Depends(get_current_user)):
    return [ReadingRequest(**row) for row in list_outgoing(requester_id=user["id"], status=status)]


@router.post("/requests/{request_id}/respond", response_model=ReadingRequest, summary="Accept or decline a request")
def post_respond(request_id: str, request: ReadingRequestRespond, user: dict = Depends(get_current_user)):
    row = respond(request_id=request_id, owner_id=user["id"], decision=request.decision)
    return ReadingRequest(**row)


@router.delete("/requests/{request_id}", summary="Withdraw a pending request")
def delete_request(request_id: str, user: dict = Depends(get_current_user)):
    cancel_request(requester_id=user["id"], request_id=request_id)
    return {"status": "ok"}


@router.get("/viewers", response_model=list[Viewer], summary="People who can view my readings")
def get_viewers(user: dict = Depends(get_current_user)):
    return [Viewer(**row) for row in list_viewers(owner_id=user["id"])]


@router.get("/owners", response_model=list[SharedOwner], summary="People whose readings I can view")
def get_owners(user: dict = Depends(get_current_user)):
    return [SharedOwner(**row) for row in list_owners(viewer_id=user["id"])]


@router.post("/viewers/{viewer_id}/block", response_model=Viewer, summary="Block a viewer")
def block_viewer(viewer_id: str, user: dict = Depends(get_current_user)):
    set_status(owner_id=user["id"], viewer_id=viewer_id, status="blocked")
    return _viewer(user["id"], viewer_id)


@router.post("/viewers/{viewer_id}/unblock", response_model=Viewer, summary="Unblock a viewer")
def unblock_viewer(viewer_id: str, user: dict = Depends(get_current_user)):
    set_status(owner_id=user["id"], viewer_id=viewer_id, status="active")
    return _viewer(user["id"], viewer_id)


@router.delete("/viewers/{viewer_id}", summary="Remove a viewer")
def remove_viewer(viewer_id: str, user: dict = Depends(get_current_user)):
    revoke(owner_id=user["id"], viewer_id=viewer_id)
    return {"status": "ok"}


def _viewer(owner_id: str, viewer_id: str) -> Viewer:
    row = next(r for r in list_viewers(owner_id=owner_id) if r["viewer_id"] == viewer_id)
    return Viewer(**row)
