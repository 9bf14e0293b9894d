"""Stored attachment API endpoints"""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from invoice_sync.infrastructure.persistence.repositories import AttachmentRepository
from invoice_sync.presentation.api.dependencies import get_attachment_repository
from invoice_sync.presentation.api.v1.schemas.sync import (
    AttachmentListResponse,
    AttachmentResponse,
    PaginationSchema,
)

router = APIRouter()


@router.get("", response_model=AttachmentListResponse)
async def list_attachments(
    repo: Annotated[AttachmentRepository, Depends(get_attachment_repository)],
    user_id: Annotated[str, Query(alias="userId")],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """List a user's stored attachments, newest first"""
    items, total = await repo.list_for_user(user_id, page=page, limit=limit)
    return AttachmentListResponse(
        data=[AttachmentResponse.model_validate(item) for item in items],
        pagination=PaginationSchema(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: str,
    repo: Annotated[AttachmentRepository, Depends(get_attachment_repository)],
    user_id: Annotated[str, Query(alias="userId")],
):
    """Soft delete an attachment so the same file can be stored again"""
    if not await repo.soft_delete(attachment_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attachment not found: {attachment_id}",
        )
