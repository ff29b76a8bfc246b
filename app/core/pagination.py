"""
Pagination helper.

Builds bounded, deterministic listings with a consistent response shape:
{"data": [...], "pagination": {"count", "total", "page", "pageSize", "hasMore"}}
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple
from fastapi import Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.core.ownership import ResourceRepository

SortOrder = Literal["asc", "desc"]


class PaginationQuery(BaseModel):
    """Request-scoped listing parameters. Out-of-range values are clamped, not rejected."""
    page: Optional[int] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: SortOrder = "desc"


class PaginationMetadata(BaseModel):
    """Pagination block returned with every listing."""
    model_config = ConfigDict(populate_by_name=True)

    count: int
    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    has_more: bool = Field(alias="hasMore")


@dataclass
class PaginatedResult:
    data: List[Any]
    pagination: PaginationMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "pagination": self.pagination.model_dump(by_alias=True),
        }


def pagination_params(
    page: Optional[int] = Query(None, description="Page number (1-based)"),
    limit: Optional[int] = Query(None, description="Items per page"),
    search: Optional[str] = Query(None, description="Case-insensitive text search"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Sort field"),
    sort_order: SortOrder = Query("desc", alias="sortOrder", description="Sort direction"),
) -> PaginationQuery:
    """FastAPI dependency reading pagination query parameters."""
    return PaginationQuery(
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def resolve_page_window(
    query: PaginationQuery,
    max_limit: Optional[int] = None,
    default_limit: Optional[int] = None
) -> Tuple[int, int, int]:
    """
    Clamp page and limit into their valid ranges.

    Returns:
        Tuple of (page, limit, offset)
    """
    max_limit = max_limit or settings.PAGINATION_MAX_LIMIT
    default_limit = default_limit or settings.PAGINATION_DEFAULT_LIMIT

    page = max(1, query.page if query.page is not None else 1)
    requested = query.limit if query.limit is not None else default_limit
    limit = min(max_limit, max(1, requested))
    offset = (page - 1) * limit
    return page, limit, offset


def build_where_clause(
    repo: ResourceRepository,
    query: PaginationQuery,
    base_filters: Sequence[Any] = (),
    search_fields: Sequence[str] = ()
) -> Optional[Any]:
    """AND the base filters with an OR'd case-insensitive search across search_fields."""
    clauses = list(base_filters)

    if query.search and search_fields:
        pattern = f"%{query.search}%"
        clauses.append(or_(*[repo.column(name).ilike(pattern) for name in search_fields]))

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return and_(*clauses)


def resolve_sort_column(
    repo: ResourceRepository,
    sort_by: Optional[str],
    sortable_fields: Dict[str, Any],
    default_sort: str
) -> Any:
    """
    Map a requested sort field to a column.

    Only whitelisted names are honoured; anything else falls back to the default.
    """
    if sort_by and sort_by in sortable_fields:
        return sortable_fields[sort_by]
    if default_sort in sortable_fields:
        return sortable_fields[default_sort]
    return repo.column(default_sort)


async def build_paginated_response(
    db: AsyncSession,
    repo: ResourceRepository,
    query: PaginationQuery,
    base_filters: Sequence[Any] = (),
    search_fields: Sequence[str] = (),
    sortable_fields: Optional[Dict[str, Any]] = None,
    default_sort: str = "created_at",
    transform: Optional[Callable[[Any], Any]] = None,
    max_limit: Optional[int] = None
) -> PaginatedResult:
    """
    Build paginated response with automatic count, offset, and sorting.

    Example:
        result = await build_paginated_response(
            db, repositories.projects, query,
            base_filters=[Project.owner_id == user.id],
            search_fields=["name", "description"],
            sortable_fields={"name": Project.name, "created_at": Project.created_at},
        )
    """
    page, limit, offset = resolve_page_window(query, max_limit=max_limit)

    where = build_where_clause(repo, query, base_filters, search_fields)

    total = await repo.count(db, where)

    sort_column = resolve_sort_column(
        repo, query.sort_by, sortable_fields or {}, default_sort
    )
    ordered = sort_column.asc() if query.sort_order == "asc" else sort_column.desc()

    results = await repo.list(
        db,
        where=where,
        order_by=[ordered, repo.id_column.asc()],
        limit=limit,
        offset=offset,
    )

    count = len(results)
    data = [transform(item) for item in results] if transform else results

    return PaginatedResult(
        data=data,
        pagination=PaginationMetadata(
            count=count,
            total=total,
            page=page,
            page_size=limit,
            has_more=offset + count < total,
        ),
    )


async def get_pagination_metadata(
    db: AsyncSession,
    repo: ResourceRepository,
    where: Optional[Any],
    query: PaginationQuery,
    max_limit: Optional[int] = None
) -> PaginationMetadata:
    """Calculate pagination metadata without fetching data."""
    page, limit, offset = resolve_page_window(query, max_limit=max_limit)
    total = await repo.count(db, where)
    count = min(limit, max(0, total - offset))

    return PaginationMetadata(
        count=count,
        total=total,
        page=page,
        page_size=limit,
        has_more=offset + limit < total,
    )
