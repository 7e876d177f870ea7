"""
Prohmed telemedicine access codes.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db, utcnow, as_utc
from core.security import get_current_active_user
from models.prohmed import ProhmedCodeStatus
from models.user import User
from repositories.prohmed import ProhmedCodeRepository
from schemas.prohmed import (
    ProhmedCodesResponse,
    ProhmedGenerateRequest,
    ProhmedRedeemRequest,
    ProhmedRedeemResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProhmedCodesResponse)
async def list_prohmed_codes(
    code_status: Optional[ProhmedCodeStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=200, ge=1, le=1000),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    codes = await ProhmedCodeRepository(db).list_codes(status=code_status, skip=skip, limit=limit)
    return ProhmedCodesResponse(codes=codes, count=len(codes))


@router.post("/generate", response_model=ProhmedCodesResponse, status_code=status.HTTP_201_CREATED)
async def generate_prohmed_codes(
    request: ProhmedGenerateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    expires_at = utcnow() + timedelta(days=request.expires_in_days) if request.expires_in_days else None
    codes = await ProhmedCodeRepository(db).create_batch(
        count=request.count,
        access_type=request.type,
        source=request.source,
        expires_at=expires_at,
    )
    logger.info(f"Admin {admin.id} generated {len(codes)} Prohmed codes ({request.type.value})")
    return ProhmedCodesResponse(codes=codes, count=len(codes))


@router.post("/redeem", response_model=ProhmedRedeemResponse)
async def redeem_prohmed_code(
    request: ProhmedRedeemRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    repo = ProhmedCodeRepository(db)
    code = await repo.get_by_code(request.code)
    if not code:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Codice non trovato")
    if code.status != ProhmedCodeStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Codice non più attivo")

    now = utcnow()
    if code.expires_at and as_utc(code.expires_at) <= now:
        await repo.mark_expired(code)
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Codice scaduto")

    if not await repo.redeem(code, current_user.id, now):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Codice non più attivo")

    logger.info(f"User {current_user.id} redeemed Prohmed code {code.id}")
    return ProhmedRedeemResponse(message="Codice riscattato con successo", code=code)
