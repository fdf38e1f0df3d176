# -*- coding: utf-8 -*-
"""Sharing: Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

RequestStatus = Literal["pending", "accepted", "declined"]
PermissionStatus = Literal["active", "blocked"]


class ReadingRequestCreate(BaseModel):
    """Address the owner either by id or by email."""

    owner_id: Optional[str] = None
    owner_email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    message: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _one_target(self) -> "ReadingRequestCreate":
        if not self.owner_id and not self.owner_email:
            raise ValueError("owner_id or owner_email is required")
        return self


class ReadingRequestRespond(BaseModel):
    decision: Literal["accept", "decline"]


class ReadingRequest(BaseModel):
    id: str
    requester_id: str
    owner_id: str
    status: RequestStatus
    message: Optional[str] = None
    created_at: str
    updated_at: str
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


class Viewer(BaseModel):
    viewer_id: str
    viewer_name: Optional[str] = None
    viewer_email: str
    status: PermissionStatus
    created_at: str


class SharedOwner(BaseModel):
    owner_id: str
    owner_name: Optional[str] = None
    owner_email: str
    created_at: str
