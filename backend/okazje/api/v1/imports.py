"""Admin import endpoints.

Security model
--------------
A single pre-shared key (``INGEST_API_KEY`` env var) protects every route.
``POST /run`` takes it in the JSON body so a cron job only needs a plain
POST; the read routes take it in the ``X-Ingest-Key`` header. Keys are
compared with ``secrets.compare_digest``. An empty ``INGEST_API_KEY``
disables the endpoints.

Manual triggers are throttled per client to
``INGEST_RATE_LIMIT_PER_MINUTE`` within this process.
"""

import secrets
import time
from collections import defaultdict, deque
from typing import Deque, Dict, List

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from okazje.config import settings
from okazje.core.exceptions import NotFoundError, ProfileDisabledError
from okazje.db.session import get_db
from okazje.schemas.ingest import RunImportRequest
from okazje.schemas.run import ImportRunResponse, IngestOptions, IngestResult
from okazje.services.import_run_service import ImportRunService
from okazje.services.ingest_service import IngestService

router = APIRouter()
logger = structlog.get_logger(__name__)

_WINDOW_SECONDS = 60.0
_recent_triggers: Dict[str, Deque[float]] = defaultdict(deque)


def _verify_api_key(submitted_key: str) -> None:
    """Raise HTTP 403 if the submitted key does not match INGEST_API_KEY."""
    configured_key: str = settings.INGEST_API_KEY

    if not configured_key:
        logger.warning("ingest_api_key_not_configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Import endpoint is disabled (INGEST_API_KEY not configured)",
        )

    if not secrets.compare_digest(submitted_key.encode(), configured_key.encode()):
        logger.warning("ingest_api_key_rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )


def _prune_triggers(now: float) -> None:
    """Drop expired timestamps and forget clients with none left."""
    for client_id in list(_recent_triggers):
        recent = _recent_triggers[client_id]
        while recent and now - recent[0] >= _WINDOW_SECONDS:
            recent.popleft()
        if not recent:
            del _recent_triggers[client_id]


def _check_trigger_rate(client_id: str) -> None:
    """Raise HTTP 429 once a client exceeds its per-minute trigger budget."""
    now = time.monotonic()
    _prune_triggers(now)

    recent = _recent_triggers[client_id]
    if len(recent) >= settings.INGEST_RATE_LIMIT_PER_MINUTE:
        logger.warning("import_trigger_throttled", client=client_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many import requests, try again later",
        )
    recent.append(now)


def reset_trigger_throttle() -> None:
    _recent_triggers.clear()


def require_api_key(x_ingest_key: str = Header("", alias="X-Ingest-Key")) -> None:
    _verify_api_key(x_ingest_key)


@router.post(
    "/run",
    response_model=IngestResult,
    status_code=status.HTTP_200_OK,
    summary="Run an import profile now",
    responses={
        403: {"description": "API key missing or incorrect"},
        404: {"description": "Import profile not found"},
        409: {"description": "Import profile is disabled"},
        429: {"description": "Too many import requests"},
    },
)
async def run_import(
    body: RunImportRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> IngestResult:
    """Execute one import profile synchronously and return its outcome.

    Vendor failures do not produce an HTTP error: the run is recorded as
    failed and returned with ``ok=false``.
    """
    _verify_api_key(body.api_key)
    _check_trigger_rate(request.client.host if request.client else "unknown")

    logger.info(
        "import_triggered",
        profile_id=body.profile_id,
        dry_run=body.dry_run,
        max_items=body.max_items,
    )

    service = IngestService(db)
    try:
        return await service.run_import(
            body.profile_id,
            IngestOptions(
                dry_run=body.dry_run,
                max_items=body.max_items,
                triggered_by="manual",
                triggered_by_uid=body.triggered_by_uid,
            ),
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ProfileDisabledError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.get(
    "/runs/{run_id}",
    response_model=ImportRunResponse,
    dependencies=[Depends(require_api_key)],
    summary="Get the status of an import run",
)
async def get_import_run_status(
    run_id: str,
    db: AsyncSession = Depends(get_db),
) -> ImportRunResponse:
    run = await ImportRunService(db).get_run(run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import run not found")
    return ImportRunResponse.model_validate(run)


@router.get(
    "/profiles/{profile_id}/runs",
    response_model=List[ImportRunResponse],
    dependencies=[Depends(require_api_key)],
    summary="List recent runs of an import profile",
)
async def list_profile_runs(
    profile_id: str,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
) -> List[ImportRunResponse]:
    runs = await ImportRunService(db).list_runs_for_profile(profile_id, limit=min(max(limit, 1), 100))
    return [ImportRunResponse.model_validate(run) for run in runs]
