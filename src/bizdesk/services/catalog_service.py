"""Catalog service — knowledge-library articles and software reviews.

Learn: Plain CRUD over two tables. Writes are admin-only, but that is
enforced at the router (require_role) so the service stays unaware of
who is calling.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.db.models import Article, Review


class ArticleNotFoundError(Exception):
    """Raised when an article id does not exist."""


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Articles ───────────────────────────────────────

    async def list_articles(self) -> list[Article]:
        result = await self.db.execute(select(Article).order_by(Article.id))
        return list(result.scalars().all())

    async def create_article(self, **fields: Any) -> Article:
        article = Article(**fields)
        self.db.add(article)
        await self.db.commit()
        await self.db.refresh(article)
        return article

    async def update_article(self, article_id: int, fields: dict[str, Any]) -> Article:
        article = await self.db.get(Article, article_id)
        if not article:
            raise ArticleNotFoundError(f"Article {article_id} not found")
        for key, value in fields.items():
            setattr(article, key, value)
        await self.db.commit()
        await self.db.refresh(article)
        return article

    async def delete_article(self, article_id: int) -> None:
        article = await self.db.get(Article, article_id)
        if not article:
            raise ArticleNotFoundError(f"Article {article_id} not found")
        await self.db.delete(article)
        await self.db.commit()

    # ─── Reviews ────────────────────────────────────────

    async def create_review(self, **fields: Any) -> Review:
        review = Review(**fields)
        self.db.add(review)
        await self.db.commit()
        await self.db.refresh(review)
        return review

    async def reviews_by_category(self) -> list[dict[str, Any]]:
        """Reviews grouped by category, categories in alphabetical order."""
        result = await self.db.execute(
            select(Review).order_by(Review.category, Review.id)
        )
        groups: dict[str, list[Review]] = {}
        for review in result.scalars().all():
            groups.setdefault(review.category, []).append(review)
        return [{"category": c, "items": items} for c, items in groups.items()]
