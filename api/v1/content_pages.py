from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from models.content import PagePlacement
from repositories.content import ContentPageRepository
from schemas.content import ContentPageRead, ContentPagesResponse

router = APIRouter()


@router.get("", response_model=ContentPagesResponse)
async def list_content_pages(
    placement: Optional[PagePlacement] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return ContentPagesResponse(pages=await ContentPageRepository(db).list_published(placement))


@router.get("/{slug}", response_model=ContentPageRead)
async def get_content_page(slug: str, db: AsyncSession = Depends(get_db)):
    page = await ContentPageRepository(db).get_by_slug(slug)
    if not page or not page.is_published:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return page
