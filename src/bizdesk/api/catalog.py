"""Knowledge library + software review API.

Learn: Reads are public; every write carries the admin gate as a
route-level dependency.
- GET /articles, POST /articles, PUT /articles/:id, DELETE /articles/:id
- GET /reviews (grouped by category), POST /reviews
"""

from fastapi import APIRouter, Depends, HTTPException

from bizdesk.api.deps import get_catalog_service
from bizdesk.auth.dependencies import require_role
from bizdesk.auth.roles import Role
from bizdesk.schemas.catalog import (
    ArticleCreate,
    ArticleRead,
    ArticleUpdate,
    ReviewCreate,
    ReviewGroup,
    ReviewRead,
)
from bizdesk.services.catalog_service import ArticleNotFoundError, CatalogService

router = APIRouter()

_admin = [Depends(require_role(Role.ADMIN))]


# ─── Articles ───────────────────────────────────────────

@router.get("/articles", response_model=list[ArticleRead])
async def list_articles(svc: CatalogService = Depends(get_catalog_service)):
    return await svc.list_articles()


@router.post("/articles", response_model=ArticleRead, status_code=201, dependencies=_admin)
async def create_article(
    body: ArticleCreate,
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.create_article(**body.model_dump())


@router.put("/articles/{article_id}", response_model=ArticleRead, dependencies=_admin)
async def update_article(
    article_id: int,
    body: ArticleUpdate,
    svc: CatalogService = Depends(get_catalog_service),
):
    try:
        return await svc.update_article(article_id, body.model_dump(exclude_unset=True))
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")


@router.delete("/articles/{article_id}", dependencies=_admin)
async def delete_article(
    article_id: int,
    svc: CatalogService = Depends(get_catalog_service),
):
    try:
        await svc.delete_article(article_id)
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")
    return {"deleted": True}


# ─── Reviews ────────────────────────────────────────────

@router.get("/reviews", response_model=list[ReviewGroup])
async def list_reviews(svc: CatalogService = Depends(get_catalog_service)):
    return await svc.reviews_by_category()


@router.post("/reviews", response_model=ReviewRead, status_code=201, dependencies=_admin)
async def create_review(
    body: ReviewCreate,
    svc: CatalogService = Depends(get_catalog_service),
):
    return await svc.create_review(**body.model_dump())
