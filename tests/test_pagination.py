"""
Tests for the pagination helper.
"""
import pytest
from app.core import repositories
from app.core.pagination import (
    PaginationQuery,
    build_paginated_response,
    get_pagination_metadata,
    resolve_page_window,
)
from app.models.project import Project
from app.services.project_service import PROJECT_SORTABLE_FIELDS


@pytest.fixture
async def projects(db_session, member_user, other_user):
    names = [f"Project {i:02d}" for i in range(25)]
    for name in names:
        db_session.add(Project(name=name, description="forest level", owner_id=member_user.id))
    db_session.add(Project(name="Castle", description="stone keep", owner_id=member_user.id))
    db_session.add(Project(name="Foreign", description="forest level", owner_id=other_user.id))
    await db_session.commit()
    return names


def _owned_by(user):
    return [Project.owner_id == user.id]


class TestResolvePageWindow:
    """Page and limit clamping."""

    @pytest.mark.parametrize("page,limit,expected", [
        (None, None, (1, 20, 0)),
        (1, 10, (1, 10, 0)),
        (3, 10, (3, 10, 20)),
        (0, 10, (1, 10, 0)),
        (-5, 10, (1, 10, 0)),
        (1, 0, (1, 1, 0)),
        (1, -3, (1, 1, 0)),
        (1, 1000, (1, 100, 0)),
        (2, 1000, (2, 100, 100)),
    ])
    def test_clamping(self, page, limit, expected):
        query = PaginationQuery(page=page, limit=limit)

        assert resolve_page_window(query, max_limit=100, default_limit=20) == expected

    def test_custom_max_limit(self):
        query = PaginationQuery(page=1, limit=80)

        assert resolve_page_window(query, max_limit=50) == (1, 50, 0)


class TestBuildPaginatedResponse:
    """Listing with count, offset, search and sort."""

    async def test_first_page(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(page=1, limit=10, sort_by="name", sort_order="asc"),
            base_filters=_owned_by(member_user),
            sortable_fields=PROJECT_SORTABLE_FIELDS,
        )

        assert [p.name for p in result.data] == ["Castle"] + [f"Project {i:02d}" for i in range(9)]
        assert result.pagination.count == 10
        assert result.pagination.total == 26
        assert result.pagination.page == 1
        assert result.pagination.page_size == 10
        assert result.pagination.has_more is True

    async def test_last_page(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(page=3, limit=10, sort_by="name", sort_order="asc"),
            base_filters=_owned_by(member_user),
            sortable_fields=PROJECT_SORTABLE_FIELDS,
        )

        assert result.pagination.count == 6
        assert result.pagination.has_more is False
        assert result.data[-1].name == "Project 24"

    async def test_page_past_end(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(page=10, limit=10),
            base_filters=_owned_by(member_user),
        )

        assert result.data == []
        assert result.pagination.count == 0
        assert result.pagination.total == 26
        assert result.pagination.has_more is False

    async def test_pages_do_not_overlap(self, db_session, member_user, projects):
        seen = []
        for page in (1, 2, 3):
            result = await build_paginated_response(
                db_session, repositories.projects,
                PaginationQuery(page=page, limit=10, sort_by="name", sort_order="desc"),
                base_filters=_owned_by(member_user),
                sortable_fields=PROJECT_SORTABLE_FIELDS,
            )
            seen.extend(p.id for p in result.data)

        assert len(seen) == len(set(seen)) == 26

    async def test_search_is_case_insensitive_across_fields(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(search="STONE"),
            base_filters=_owned_by(member_user),
            search_fields=["name", "description"],
        )

        assert [p.name for p in result.data] == ["Castle"]
        assert result.pagination.total == 1

    async def test_search_respects_base_filters(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(search="forest", limit=100),
            base_filters=_owned_by(member_user),
            search_fields=["name", "description"],
        )

        assert result.pagination.total == 25
        assert all(p.owner_id == member_user.id for p in result.data)

    async def test_unknown_sort_field_falls_back(self, db_session, member_user, projects):
        """A sort field outside the whitelist is ignored, not interpolated."""
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(sort_by="owner_id; DROP TABLE projects", sort_order="asc", limit=5),
            base_filters=_owned_by(member_user),
            sortable_fields=PROJECT_SORTABLE_FIELDS,
        )

        assert result.pagination.count == 5
        assert result.pagination.total == 26

    async def test_transform(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(limit=3, sort_by="name", sort_order="asc"),
            base_filters=_owned_by(member_user),
            sortable_fields=PROJECT_SORTABLE_FIELDS,
            transform=lambda p: p.name,
        )

        assert result.data == ["Castle", "Project 00", "Project 01"]

    async def test_to_dict_uses_wire_names(self, db_session, member_user, projects):
        result = await build_paginated_response(
            db_session, repositories.projects,
            PaginationQuery(limit=5),
            base_filters=_owned_by(member_user),
        )

        body = result.to_dict()
        assert set(body["pagination"]) == {"count", "total", "page", "pageSize", "hasMore"}


class TestGetPaginationMetadata:
    """Metadata without fetching rows."""

    async def test_metadata(self, db_session, member_user, projects):
        meta = await get_pagination_metadata(
            db_session, repositories.projects, Project.owner_id == member_user.id,
            PaginationQuery(page=3, limit=10)
        )

        assert meta.total == 26
        assert meta.count == 6
        assert meta.has_more is False

    async def test_metadata_past_end(self, db_session, member_user, projects):
        meta = await get_pagination_metadata(
            db_session, repositories.projects, None, PaginationQuery(page=50, limit=10)
        )

        assert meta.count == 0
        assert meta.total == 27
