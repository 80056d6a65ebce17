"""Admin endpoints: sites, sources, generation monitor, WordPress proxy and images."""

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from autogeorge.api.dependencies import get_db, get_runner, get_search_service
from autogeorge.core.enums import SourceStatus, SourceType
from autogeorge.core.site import GenerationSettings, WordPressSite
from autogeorge.database.article_repository import ArticleRepository, ImagePromptRepository
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.site_repository import SiteRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.pipeline.images.search import ImageSearchService
from autogeorge.pipeline.orchestrator import StageRunner
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class SiteCreate(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    default_category: Optional[str] = None
    default_status: Optional[str] = "draft"
    default_author: Optional[str] = None
    enable_auto_generation: bool = False
    enable_featured_image: bool = True
    enable_auto_publish: bool = False
    is_active: bool = True


class SiteUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = None
    password: Optional[str] = None
    default_category: Optional[str] = None
    default_status: Optional[str] = None
    default_author: Optional[str] = None
    enable_auto_generation: Optional[bool] = None
    enable_featured_image: Optional[bool] = None
    enable_auto_publish: Optional[bool] = None
    is_active: Optional[bool] = None


class SourceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    type: SourceType = SourceType.RSS
    status: SourceStatus = SourceStatus.ACTIVE
    site_id: Optional[str] = None


class SourceUpdate(BaseModel):
    status: SourceStatus


class ManualPost(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    status: str = "draft"
    categories: Optional[List[int]] = None
    tags: Optional[List[int]] = None
    excerpt: Optional[str] = None
    featured_media: Optional[int] = None
    author: Optional[int] = None


class ImageSearchRequest(BaseModel):
    """Body of the search-enhanced call; the dashboard sends camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    article_id: Optional[str] = Field(default=None, alias="articleId")
    article_title: Optional[str] = Field(default=None, alias="articleTitle")
    article_content: Optional[str] = Field(default=None, alias="articleContent")
    allow_ai_generation: bool = Field(default=True, alias="allowAiGeneration")


class WordPressResource(str, Enum):
    CATEGORIES = "categories"
    TAGS = "tags"
    USERS = "users"
    MEDIA = "media"
    POSTS = "posts"


def _get_site_or_404(sites: SiteRepository, site_id: str) -> WordPressSite:
    site = sites.get(site_id)
    if site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return site


# Sites


@router.get("/sites")
async def list_sites(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    sites = SiteRepository(db).list_all()
    return {"success": True, "sites": [site.public_dict() for site in sites]}


@router.post("/sites", status_code=status.HTTP_201_CREATED)
async def create_site(
    payload: SiteCreate, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    site = SiteRepository(db).create(**payload.model_dump())
    return {"success": True, "site": site.public_dict()}


@router.get("/sites/{site_id}")
async def get_site(site_id: str, db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    site = _get_site_or_404(SiteRepository(db), site_id)
    return {"success": True, "site": site.public_dict()}


@router.patch("/sites/{site_id}")
async def update_site(
    site_id: str, payload: SiteUpdate, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    site = SiteRepository(db).update(site_id, **payload.model_dump(exclude_unset=True))
    if site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    logger.info("site_updated", site_id=site_id, fields=sorted(payload.model_fields_set))
    return {"success": True, "site": site.public_dict()}


@router.get("/sites/{site_id}/generation-settings")
async def get_generation_settings(
    site_id: str, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    sites = SiteRepository(db)
    _get_site_or_404(sites, site_id)
    return {"success": True, "settings": sites.get_generation_settings(site_id).model_dump()}


@router.put("/sites/{site_id}/generation-settings")
async def save_generation_settings(
    site_id: str, payload: GenerationSettings, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    sites = SiteRepository(db)
    _get_site_or_404(sites, site_id)
    sites.save_generation_settings(site_id, payload)
    return {"success": True, "settings": payload.model_dump()}


# Sources


@router.get("/sources")
async def list_sources(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    sources = SourceRepository(db).list_all()
    return {"success": True, "sources": [s.model_dump(mode="json") for s in sources]}


@router.post("/sources", status_code=status.HTTP_201_CREATED)
async def create_source(
    payload: SourceCreate, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    source = SourceRepository(db).create(
        name=payload.name,
        url=payload.url,
        source_type=payload.type,
        status=payload.status,
        site_id=payload.site_id,
    )
    return {"success": True, "source": source.model_dump(mode="json")}


@router.patch("/sources/{source_id}")
async def update_source(
    source_id: str, payload: SourceUpdate, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    sources = SourceRepository(db)
    if not sources.set_status(source_id, payload.status):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source not found")
    return {"success": True, "source": sources.get(source_id).model_dump(mode="json")}


@router.post("/sources/{source_id}/fetch")
async def fetch_source(
    source_id: str,
    db: DatabaseConnection = Depends(get_db),
    runner: StageRunner = Depends(get_runner),
) -> Dict[str, Any]:
    """Poll one source now instead of waiting for poll-feeds."""
    source = SourceRepository(db).get(source_id)
    if source is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source not found")
    if not source.is_pollable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Source is not an active RSS source with a URL",
        )

    results = await runner.poll_source(source)
    if results["failed_polls"]:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=results["errors"][0])
    logger.info("source_fetched_on_request", source_id=source_id, new_items=results["new_items_found"])
    return {"success": True, "results": results}


# Generation monitor


@router.get("/monitor-generation")
async def monitor_generation(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    source_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: DatabaseConnection = Depends(get_db),
) -> Dict[str, Any]:
    """Feed items with the article generated from each one."""
    page = FeedItemRepository(db).list_for_monitoring(
        status=status_filter, source_id=source_id, limit=limit, offset=offset
    )
    return {
        "success": True,
        "records": page["records"],
        "stats": page["stats"],
        "pagination": {
            "total": page["total"],
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < page["total"],
        },
    }


@router.post("/monitor-generation/{item_id}/generate")
async def generate_feed_item(
    item_id: str,
    db: DatabaseConnection = Depends(get_db),
    runner: StageRunner = Depends(get_runner),
) -> Dict[str, Any]:
    """Generate the article for one feed item now."""
    item = FeedItemRepository(db).get(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feed item not found")
    if item.processed or item.article_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Feed item already has an article"
        )

    results = await runner.generate_feed_item(item)
    if results["skipped"]:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Feed item is being generated by another run"
        )
    if results["failed"]:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=results["errors"][0])
    return {"success": True, "article_id": results["article_ids"][0], "results": results}


@router.delete("/monitor-generation")
async def cleanup_generation_records(
    days: int = Query(default=30, ge=1),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    db: DatabaseConnection = Depends(get_db),
) -> Dict[str, Any]:
    cutoff = now_utc() - timedelta(days=days)
    deleted = FeedItemRepository(db).delete_older_than(cutoff, status=status_filter)
    return {"success": True, "deleted": deleted, "cutoff": cutoff.isoformat()}


# WordPress proxy


@router.get("/wordpress/{site_id}/{resource}")
async def wordpress_resource(
    site_id: str,
    resource: WordPressResource,
    request: Request,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    db: DatabaseConnection = Depends(get_db),
) -> Dict[str, Any]:
    """Read categories, tags, users, media or posts from a site."""
    site = _get_site_or_404(SiteRepository(db), site_id)
    async with request.app.state.wordpress_client_factory(site) as wp:
        if resource == WordPressResource.POSTS:
            items = await wp.list_posts(page=page, per_page=per_page)
        else:
            items = await getattr(wp, f"list_{resource.value}")()
    return {"success": True, resource.value: items}


@router.post("/wordpress/{site_id}/posts", status_code=status.HTTP_201_CREATED)
async def create_wordpress_post(
    site_id: str,
    payload: ManualPost,
    request: Request,
    db: DatabaseConnection = Depends(get_db),
) -> Dict[str, Any]:
    site = _get_site_or_404(SiteRepository(db), site_id)
    async with request.app.state.wordpress_client_factory(site) as wp:
        post = await wp.create_post(**payload.model_dump())
    return {"success": True, "post": post}


# Image prompts


@router.get("/image-prompts/{article_id}")
async def get_image_prompt(
    article_id: str, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    """The cached image prompt of an article, if one was built."""
    article = ArticleRepository(db).get(article_id)
    if article is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Article not found")

    cached = ImagePromptRepository(db).get(article_id)
    prompt = None
    if cached is not None:
        prompt = {
            "text": cached.prompt,
            "model": cached.model,
            "created_at": cached.created_at.isoformat(),
            "length": len(cached.prompt),
            "words": len(cached.prompt.split()),
        }
    return {
        "success": True,
        "article": {"id": article.id, "title": article.title, "status": article.status.value},
        "prompt": prompt,
    }


@router.delete("/image-prompts/{article_id}")
async def delete_image_prompt(
    article_id: str, db: DatabaseConnection = Depends(get_db)
) -> Dict[str, Any]:
    """Forget the cached prompt; the next image run builds a fresh one."""
    if ArticleRepository(db).get(article_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Article not found")
    deleted = ImagePromptRepository(db).delete(article_id)
    return {"success": True, "deleted": deleted}


# Image search


@router.post("/image/search-enhanced")
async def search_enhanced(
    payload: ImageSearchRequest,
    search_service: ImageSearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    """Find a featured image for an article through the multi-level search."""
    result = await search_service.search(
        payload.article_id,
        payload.article_title,
        payload.article_content,
        allow_ai_generation=payload.allow_ai_generation,
    )
    return {
        "success": True,
        "image": {
            "url": result.url,
            "score": result.score,
            "source": result.source,
            "level": result.level.value,
        },
        "search_log": [attempt.model_dump(mode="json") for attempt in result.search_log],
        "keywords": result.keywords,
        "themes": result.themes,
        "is_sensitive": result.is_sensitive,
    }
