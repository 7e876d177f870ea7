import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from models.user import User
from repositories.content import ContentPageRepository
from schemas.content import (
    ContentPageCreate,
    ContentPageRead,
    ContentPagesResponse,
    ContentPageUpdate,
)
from services.content_pages import sanitize_html

logger = logging.getLogger(__name__)

router = APIRouter()


def _slug_conflict() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A page with this slug already exists")


@router.get("/content-pages", response_model=ContentPagesResponse)
async def admin_list_content_pages(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return ContentPagesResponse(pages=await ContentPageRepository(db).list_all())


@router.post("/content-pages", response_model=ContentPageRead, status_code=status.HTTP_201_CREATED)
async def create_content_page(
    request: ContentPageCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = ContentPageRepository(db)
    if await repo.get_by_slug(request.slug):
        raise _slug_conflict()

    data = request.model_dump()
    data["content"] = sanitize_html(data["content"])
    page = await repo.create(data)
    logger.info(f"Content page {page.slug} created")
    return page


@router.patch("/content-pages/{page_id}", response_model=ContentPageRead)
async def update_content_page(
    page_id: int,
    request: ContentPageUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = ContentPageRepository(db)
    page = await repo.get(page_id)
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")

    changes = request.model_dump(exclude_unset=True)
    if changes.get("slug") and changes["slug"] != page.slug:
        if await repo.get_by_slug(changes["slug"]):
            raise _slug_conflict()
    if changes.get("content") is not None:
        changes["content"] = sanitize_html(changes["content"])
    return await repo.update(page, changes)


@router.delete("/content-pages/{page_id}")
async def delete_content_page(page_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await ContentPageRepository(db).delete(page_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return {"success": True, "message": "Content page deleted successfully"}
