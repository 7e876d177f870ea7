"""
Quiz certificates: issuance, listing, PDF download and public verification.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import forbid_ai_only
from core.database import get_db
from models.quiz import Quiz
from models.user import User
from repositories.certificate import CertificateRepository
from repositories.quiz import QuizAttemptRepository
from schemas.certificate import (
    CertificateRead,
    CertificatesResponse,
    CertificateVerification,
    CertificateVisibilityUpdate,
)
from services.certificates import MIN_CERTIFICATE_SCORE, build_content, render_for
from tasks.certificate_tasks import send_certificate_email
from tasks.utils import enqueue

logger = logging.getLogger(__name__)

router = APIRouter()
user_router = APIRouter()


@router.post("/generate/{attempt_id}", response_model=CertificateRead, status_code=status.HTTP_201_CREATED)
async def generate_certificate(
    attempt_id: int,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    """Issue the certificate for a passed attempt. Repeated calls return the same certificate."""
    attempt = await QuizAttemptRepository(db).get_attempt(attempt_id)
    if not attempt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz attempt not found")
    if attempt.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

    if attempt.score < MIN_CERTIFICATE_SCORE:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": f"Certificate requires minimum score of {MIN_CERTIFICATE_SCORE}%",
                "currentScore": attempt.score,
            },
        )

    repo = CertificateRepository(db)
    existing = await repo.get_by_attempt(attempt.id)
    if existing:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=CertificateRead.model_validate(existing).model_dump(mode="json", by_alias=True),
        )

    quiz = await db.get(Quiz, attempt.quiz_id)
    title = quiz.title if quiz else "Quiz"
    certificate = await repo.issue(current_user.id, attempt.quiz_id, attempt.id, title, attempt.score)
    logger.info(f"Certificate {certificate.id} issued to user {current_user.id} for attempt {attempt.id}")

    enqueue(send_certificate_email, certificate.id)
    return certificate


@router.get("/download/{certificate_id}")
async def download_certificate(
    certificate_id: int,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    certificate = await CertificateRepository(db).get(certificate_id)
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    if certificate.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

    owner = current_user if certificate.user_id == current_user.id else await db.get(User, certificate.user_id)
    pdf_bytes, filename = render_for(certificate, owner)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/verify/{code}", response_model=CertificateVerification)
async def verify_certificate(code: str, db: AsyncSession = Depends(get_db)):
    certificate = await CertificateRepository(db).get_by_code(code)
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    if not certificate.is_public:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This certificate is private")

    owner = await db.get(User, certificate.user_id)
    content = build_content(certificate, owner)
    return CertificateVerification(
        recipient_name=content.recipient_name,
        title=certificate.title,
        score=certificate.score,
        verification_code=certificate.verification_code,
        issued_at=certificate.issued_at,
    )


@user_router.get("/certificates", response_model=CertificatesResponse)
async def list_my_certificates(
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    return CertificatesResponse(certificates=await CertificateRepository(db).list_for_user(current_user.id))


@user_router.patch("/certificates/{certificate_id}/visibility", response_model=CertificateRead)
async def update_certificate_visibility(
    certificate_id: int,
    request: CertificateVisibilityUpdate,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    repo = CertificateRepository(db)
    certificate = await repo.get(certificate_id)
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    if certificate.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return await repo.update(certificate, {"is_public": request.is_public})
