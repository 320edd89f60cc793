"""
Referral Fraud API

FastAPI application exposing the assessment engine.

Endpoints:
- POST /assessments: Assess a referral signup
- POST /signups, POST /referrals: Record evidence from the host app
- GET /assessments/flagged: Human review queue
- GET /users/{user_id}/assessments: Assessment history
- POST /assessments/{assessment_id}/review: Record an analyst verdict
- POST /reference/reload: Reload disposable-domain / datacenter lists
- GET /health: Health check
- GET /metrics, GET /metrics/summary: Prometheus metrics and telemetry
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..assessment import ReferralFraudAssessor
from ..config import settings, ReferenceDataLoader
from ..evidence import (
    EvidenceRepository,
    RedisEvidenceRepository,
    archive_from_settings,
)
from ..features import normalize_email, split_email
from ..metrics import metrics, setup_metrics, telemetry
from ..schemas import (
    AssessmentRequest,
    FraudAssessment,
    ReferralEvent,
    ReviewRequest,
    SignupEvent,
)
from ..utils import get_logger
from .auth import require_api_token, require_admin_token, require_metrics_token
from .dependencies import (
    create_redis_client,
    get_assessor,
    get_reference_loader,
    get_repository,
)

logger = logging.getLogger("referral_fraud.api")

DEFAULT_REFERENCE_PATH = Path(__file__).parent.parent.parent / "config" / "reference_data.yaml"


def _reference_path() -> Path:
    if settings.reference_data_path:
        return Path(settings.reference_data_path)
    return DEFAULT_REFERENCE_PATH


def _wire(
    app: FastAPI,
    repository: EvidenceRepository,
    reference: Optional[ReferenceDataLoader] = None,
) -> ReferralFraudAssessor:
    assessor = ReferralFraudAssessor(repository, reference=reference)
    app.state.assessor = assessor
    return assessor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Initializes and cleans up resources:
    - Redis connection (hot evidence)
    - PostgreSQL archive (assessments, review queue)
    - Assessor with reference data
    """
    # Initialize Redis
    redis_client = create_redis_client()
    try:
        await redis_client.ping()
        metrics.component_health.labels(component="redis").set(1)
    except Exception as e:
        logger.warning("Redis connection failed: %s", e)
        metrics.component_health.labels(component="redis").set(0)

    # Initialize archive
    archive = archive_from_settings()
    await archive.initialize()
    try:
        await archive.create_schema()
        metrics.component_health.labels(component="postgres").set(1)
    except Exception as e:
        logger.warning("Archive schema setup failed: %s", e)
        metrics.component_health.labels(component="postgres").set(0)

    reference = ReferenceDataLoader(path=_reference_path())
    assessor = _wire(app, RedisEvidenceRepository(redis_client, archive), reference)
    app.state.redis_client = redis_client
    app.state.archive = archive

    # Setup metrics
    if settings.metrics_enabled:
        setup_metrics()

    yield

    # Cleanup
    await assessor.drain()
    await redis_client.aclose()
    await archive.close()


router = APIRouter()


def create_app(
    repository: Optional[EvidenceRepository] = None,
    reference: Optional[ReferenceDataLoader] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        repository: Pre-built evidence repository. When given, the app is
            wired immediately and no Redis/PostgreSQL connections are made.
        reference: Reference data loader used with `repository`
    """
    get_logger()

    app = FastAPI(
        title="Referral Fraud API",
        description="Fraud risk assessment for referral signups",
        version="1.0.0",
        lifespan=None if repository is not None else lifespan,
    )

    if repository is not None:
        _wire(app, repository, reference)

    app.include_router(router)
    return app


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns service health status and component availability.
    """
    state = request.app.state
    components = {"assessor": getattr(state, "assessor", None) is not None}

    redis_client = getattr(state, "redis_client", None)
    if redis_client is not None:
        try:
            components["redis"] = bool(await redis_client.ping())
        except Exception:
            components["redis"] = False

    archive = getattr(state, "archive", None)
    if archive is not None:
        try:
            components["postgres"] = await archive.health_check()
        except Exception:
            components["postgres"] = False

    return {
        "status": "healthy" if all(components.values()) else "degraded",
        "components": components,
    }


@router.get("/metrics")
def metrics_endpoint(_: None = Depends(require_metrics_token)):
    """Expose Prometheus metrics with optional token auth."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/metrics/summary")
def metrics_summary(hours: int = 24, _: None = Depends(require_metrics_token)):
    """Return recent assessment telemetry for dashboards."""
    return telemetry.snapshot(hours=hours)


@router.post("/assessments", response_model=FraudAssessment)
async def assess_signup(
    payload: AssessmentRequest,
    assessor: ReferralFraudAssessor = Depends(get_assessor),
    _: None = Depends(require_api_token),
):
    """
    Assess a referral signup.

    Always answers with an assessment; infrastructure failures show up
    as `degraded` or as the conservative manual-review default.
    """
    metrics.requests_total.labels(endpoint="/assessments").inc()
    return await assessor.assess_signup(
        candidate_user_id=payload.user_id,
        email=payload.email,
        device_attributes=payload.device,
        referrer_id=payload.referrer_id,
        referral_code=payload.referral_code,
        ip_address=payload.ip_address,
        network=payload.network,
        occurred_at=payload.occurred_at,
    )


@router.post("/signups")
async def record_signup(
    event: SignupEvent,
    repository: EvidenceRepository = Depends(get_repository),
    _: None = Depends(require_api_token),
):
    """Record a completed signup (IP window and email index)."""
    metrics.requests_total.labels(endpoint="/signups").inc()
    occurred_at = event.occurred_at or datetime.now(UTC)

    try:
        if event.ip_address:
            await repository.record_signup(event.user_id, event.ip_address, occurred_at)
        if event.email and split_email(event.email) is not None:
            await repository.record_account(event.user_id, normalize_email(event.email))
    except Exception as e:
        logger.error("Failed to record signup for %s: %s", event.user_id, e)
        metrics.errors_total.labels(error_type="record_signup").inc()
        raise HTTPException(status_code=500, detail="Failed to record signup")

    return {"status": "recorded", "user_id": event.user_id}


@router.post("/referrals")
async def record_referral(
    event: ReferralEvent,
    repository: EvidenceRepository = Depends(get_repository),
    _: None = Depends(require_api_token),
):
    """Record an accepted referral edge."""
    metrics.requests_total.labels(endpoint="/referrals").inc()
    created_at = event.created_at or datetime.now(UTC)

    try:
        await repository.record_referral(event.referrer_id, event.referred_id, created_at)
    except Exception as e:
        logger.error("Failed to record referral %s -> %s: %s", event.referrer_id, event.referred_id, e)
        metrics.errors_total.labels(error_type="record_referral").inc()
        raise HTTPException(status_code=500, detail="Failed to record referral")

    return {"status": "recorded", "referrer_id": event.referrer_id, "referred_id": event.referred_id}


@router.get("/assessments/flagged", response_model=list[FraudAssessment])
async def flagged_assessments(
    limit: int = 50,
    repository: EvidenceRepository = Depends(get_repository),
    _: None = Depends(require_api_token),
):
    """Assessments awaiting human review, newest first."""
    return await repository.flagged_assessments(limit=limit)


@router.get("/users/{user_id}/assessments", response_model=list[FraudAssessment])
async def user_assessments(
    user_id: str,
    limit: int = 10,
    repository: EvidenceRepository = Depends(get_repository),
    _: None = Depends(require_api_token),
):
    """Assessment history for one user, newest first."""
    return await repository.assessment_history(user_id, limit=limit)


@router.post("/assessments/{assessment_id}/review")
async def review_assessment(
    assessment_id: str,
    review: ReviewRequest,
    repository: EvidenceRepository = Depends(get_repository),
    _: None = Depends(require_admin_token),
):
    """Record an analyst verdict and take the assessment off the queue."""
    updated = await repository.mark_reviewed(
        assessment_id, review.approved, review.reviewer_notes
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"Assessment '{assessment_id}' not found")

    logger.info(
        "Assessment %s reviewed: approved=%s",
        assessment_id,
        review.approved,
    )
    return {"status": "reviewed", "assessment_id": assessment_id, "approved": review.approved}


@router.post("/reference/reload")
async def reload_reference_data(
    loader: ReferenceDataLoader = Depends(get_reference_loader),
    _: None = Depends(require_admin_token),
):
    """Reload reference data from its YAML file."""
    if loader.reload():
        return {
            "status": "reloaded",
            "disposable_email_domains": len(loader.data.disposable_email_domains),
            "datacenter_ip_prefixes": len(loader.data.datacenter_ip_prefixes),
        }
    raise HTTPException(status_code=500, detail="Reference data reload failed")


app = create_app()


# Entry point for running directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "referral_fraud.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_debug,
    )
