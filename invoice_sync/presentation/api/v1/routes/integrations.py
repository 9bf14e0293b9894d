"""Integration API endpoints"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from invoice_sync.application.services import HealthUpdater
from invoice_sync.application.use_cases.sync import BatchSyncService
from invoice_sync.domain.entities import IntegrationEntity
from invoice_sync.domain.exceptions import IntegrationNotFoundException, ValidationException
from invoice_sync.infrastructure.persistence.repositories import IntegrationRepository
from invoice_sync.presentation.api.dependencies import (
    get_batch_sync_service,
    get_health_updater,
    get_integration_repository,
)
from invoice_sync.presentation.api.v1.schemas.sync import (
    IntegrationResponse,
    IntegrationSyncSchema,
)
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _to_response(integration: IntegrationEntity) -> IntegrationResponse:
    return IntegrationResponse(
        id=integration.id,
        user_id=integration.user_id,
        provider=integration.provider.value,
        status=integration.status.value,
        email=integration.email,
        metadata=integration.metadata,
    )


async def _get_or_404(repo: IntegrationRepository, integration_id: str) -> IntegrationEntity:
    integration = await repo.get_integration(integration_id)
    if not integration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Integration not found: {integration_id}",
        )
    return integration


@router.get("/{integration_id}", response_model=IntegrationResponse)
async def get_integration(
    integration_id: str,
    repo: Annotated[IntegrationRepository, Depends(get_integration_repository)],
):
    """Get integration status and sync metadata"""
    return _to_response(await _get_or_404(repo, integration_id))


@router.post("/{integration_id}/sync", response_model=IntegrationSyncSchema)
async def sync_integration(
    integration_id: str,
    repo: Annotated[IntegrationRepository, Depends(get_integration_repository)],
    batch: Annotated[BatchSyncService, Depends(get_batch_sync_service)],
):
    """
    Run one sync pass for a single integration now.

    Returns 409 when a pass for the same integration is already running.
    A failed pass still returns 200; the outcome is in the body.
    """
    integration = await _get_or_404(repo, integration_id)
    report = await batch.sync_integration(integration)

    if report.skipped:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=report.message)

    logger.info(
        "Manual sync for integration %s: success=%s stored=%d",
        integration_id,
        report.success,
        report.emails_synced,
    )
    return report.to_dict()


@router.post("/{integration_id}/resume", response_model=IntegrationResponse)
async def resume_integration(
    integration_id: str,
    health: Annotated[HealthUpdater, Depends(get_health_updater)],
):
    """Re-enable a paused integration after the user reconnects it"""
    try:
        integration = await health.resume(integration_id)
    except IntegrationNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except ValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return _to_response(integration)
