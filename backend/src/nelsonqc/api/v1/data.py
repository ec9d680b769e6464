"""Series REST endpoints for nelsonqc.

Provides read access to the current series and its Nelson Rule
annotations, and a submission endpoint equivalent to a WebSocket
``update-data`` message with no origin (every viewer receives it).
"""

import structlog
from fastapi import APIRouter, Depends

from nelsonqc.api.deps import get_coordinator, get_rule_library
from nelsonqc.api.schemas import (
    AnnotatedSeriesResponse,
    DataUpdateResponse,
    RuleResponse,
    SampleIn,
    SampleOut,
    to_series,
)
from nelsonqc.core.engine.nelson_rules import NelsonRuleLibrary
from nelsonqc.core.series import Channel
from nelsonqc.core.sync import SyncCoordinator

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["data"])


@router.get("/data", response_model=list[SampleOut])
async def get_data(
    coordinator: SyncCoordinator = Depends(get_coordinator),
) -> list[SampleOut]:
    """Return the current authoritative series."""
    return [SampleOut.from_sample(s) for s in coordinator.get_current_series()]


@router.post("/data", response_model=DataUpdateResponse)
async def post_data(
    samples: list[SampleIn],
    coordinator: SyncCoordinator = Depends(get_coordinator),
) -> DataUpdateResponse:
    """Replace the series and broadcast it to every viewer.

    Last write wins: the submitted series replaces the current one as-is.
    """
    series = to_series(samples)
    logger.info("rest_update_received", samples=len(series))
    await coordinator.apply_update(series, origin=None)
    return DataUpdateResponse(
        success=True,
        data=[SampleOut.from_sample(s) for s in series],
    )


@router.get("/annotated/{channel}", response_model=AnnotatedSeriesResponse)
async def get_annotated(
    channel: Channel,
    coordinator: SyncCoordinator = Depends(get_coordinator),
) -> AnnotatedSeriesResponse:
    """Evaluate Nelson Rules over one channel of the current series."""
    return AnnotatedSeriesResponse.from_annotated(coordinator.get_annotated(channel))


@router.get("/rules", response_model=list[RuleResponse])
async def list_rules(
    library: NelsonRuleLibrary = Depends(get_rule_library),
) -> list[RuleResponse]:
    """List the Nelson rules the engine evaluates."""
    return [
        RuleResponse(
            rule_id=rule.rule_id,
            rule_name=rule.rule_name,
            description=rule.description,
            window=rule.min_samples_required,
            severity=rule.severity.value,
        )
        for rule in library.rules
    ]
