"""Batch sync API endpoints"""

from typing import Annotated

from fastapi import APIRouter, Depends

from invoice_sync.application.use_cases.sync import BatchSyncService
from invoice_sync.domain.enums import MailProvider
from invoice_sync.presentation.api.dependencies import get_batch_sync_service
from invoice_sync.presentation.api.v1.schemas.sync import BatchSyncResponse

router = APIRouter()


@router.post("", response_model=list[BatchSyncResponse])
async def sync_all_providers(
    batch: Annotated[BatchSyncService, Depends(get_batch_sync_service)],
):
    """Sync every active integration of every provider"""
    reports = await batch.sync_all()
    return [report.to_dict() for report in reports.values()]


@router.post("/{provider}", response_model=BatchSyncResponse)
async def sync_provider(
    provider: MailProvider,
    batch: Annotated[BatchSyncService, Depends(get_batch_sync_service)],
):
    """Sync every active integration of one provider"""
    report = await batch.sync_provider(provider)
    return report.to_dict()
