"""Program routes — catalog, eligibility, recommendations, current enrollment, start.

JSON API over the service layer. Business-rule outcomes are returned as
data; only service errors become HTTP errors.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_session
from src.programs.auth import get_current_user_id, get_optional_user_id
from src.programs.service import (
    NotEligibleError,
    ProgramNotFoundError,
    UserNotFoundError,
    get_current_program,
    get_paywall_options,
    get_program_with_eligibility,
    list_programs_with_recommendations,
    start_program,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/programs", tags=["programs"])


class StartProgramRequest(BaseModel):
    template_slug: str | None = None


def _now() -> datetime:
    return datetime.now(UTC)


@router.get("")
async def list_programs(
    sleep_score: float | None = Query(default=None, ge=0, le=100),
    coach_recommended: bool = Query(default=False),
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
) -> dict[str, Any]:
    """Public catalog; recommendations are null for anonymous callers."""
    programs, recommendations = await list_programs_with_recommendations(
        db,
        user_id,
        now=_now(),
        sleep_score=sleep_score,
        has_coach_recommendation=coach_recommended,
    )
    return {
        "programs": [p.model_dump(mode="json") for p in programs],
        "recommendations": (
            [r.model_dump(mode="json") for r in recommendations]
            if recommendations is not None
            else None
        ),
    }


@router.get("/paywall")
async def paywall(
    sleep_score: float = Query(ge=0, le=100),
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Top options to show after the sleep check."""
    try:
        recommendations = await get_paywall_options(db, user_id, now=_now(), sleep_score=sleep_score)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    return {"recommendations": [r.model_dump(mode="json") for r in recommendations]}


@router.get("/current")
async def current_program(
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> dict[str, Any]:
    """The caller's ACTIVE or PENDING_PAYMENT enrollment; null when there is none."""
    instance = await get_current_program(db, user_id)
    return {"instance": instance.model_dump(mode="json") if instance is not None else None}


@router.post("/start")
async def start(
    body: StartProgramRequest,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Create a pending enrollment if the user is eligible."""
    try:
        instance = await start_program(db, user_id, body.template_slug, now=_now())
    except ProgramNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found") from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    except NotEligibleError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Not eligible for this program",
                "reasons": [r.value for r in exc.reasons],
            },
        ) from exc

    logger.info("User %s started %s (pending payment)", user_id, instance.template.slug)
    return {"instance": instance.model_dump(mode="json")}


@router.get("/{slug}")
async def program_detail(
    slug: str,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
) -> dict[str, Any]:
    """One catalog entry, with eligibility for a signed-in caller."""
    try:
        program, eligibility = await get_program_with_eligibility(db, slug, user_id, now=_now())
    except ProgramNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found") from exc
    return {
        "program": program.model_dump(mode="json"),
        "eligibility": eligibility.model_dump(mode="json") if eligibility is not None else None,
    }
