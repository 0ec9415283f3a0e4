from datetime import datetime, timezone

import pytest

from listing import service
from listing.schemas import ListingOptions, WhereRelated
from users import service as users_service

POST_SCHEMA = {
    "title": {"type": "string"},
    "tags": {"type": "tags"},
    "cover": {"type": "file"},
    "categories": {"type": "relation", "relation": {"type": "many-to-many", "targetCollection": "categories"}},
}


@pytest.fixture()
def posts_db(fake_db):
    fake_db.add_type("collection", "posts", POST_SCHEMA, options={"basePath": "/blog/"})
    fake_db.add_type("collection", "categories", {"name": {"type": "string"}})
    fake_db.add_table(
        "collection_posts",
        [
            {
                "id": str(n),
                "slug": f"post-{n}",
                "title": f"Post {n}",
                "status": "published",
                "created_at": 1_700_000_000 + n,
                "updated_at": (1_700_000_000 + n) * 1000,
                "author": "u1",
                "kind": "news" if n % 2 else "blog",
            }
            for n in range(1, 26)
        ],
        columns=("parent_id",),
    )
    fake_db.add_table(
        "collection_categories",
        [
            {"id": "c1", "slug": "news", "name": "News", "parent_id": None},
            {"id": "c2", "slug": "local", "name": "Local", "parent_id": "c1"},
            {"id": "c3", "slug": "sports", "name": "Sports", "parent_id": None},
        ],
    )
    fake_db.add_table(
        "junction_posts_categories",
        [
            {"id": "j1", "collection_id": "1", "target_id": "c1", "sort": 0},
            {"id": "j2", "collection_id": "2", "target_id": "c2", "sort": 0},
            {"id": "j3", "collection_id": "3", "target_id": "c3", "sort": 0},
            {"id": "j4", "collection_id": "1", "target_id": "c3", "sort": 1},
        ],
    )
    fake_db.users["u1"] = {"id": "u1", "name": "Ada", "email": "ada@example.com"}
    return fake_db


def _ids(result):
    return [item["id"] for item in result["items"]]


@pytest.mark.asyncio
async def test_pagination_last_page(posts_db):
    result = await service.get_collections("posts", ListingOptions(limit=10, offset=20))

    assert result["total"] == 25
    assert len(result["items"]) == 5
    assert result["has_more"] is False
    assert result["pagination"]["page"] == 3
    assert result["pagination"]["has_previous_page"] is True
    # Newest first by default.
    assert _ids(result) == ["5", "4", "3", "2", "1"]


@pytest.mark.asyncio
async def test_pagination_first_page_has_more(posts_db):
    result = await service.get_collections("posts", ListingOptions(limit=10))
    assert result["has_more"] is True
    assert _ids(result)[0] == "25"


@pytest.mark.asyncio
async def test_no_limit_returns_everything_without_pagination(posts_db):
    result = await service.get_collections("posts")
    assert result["total"] == 25
    assert result["has_more"] is False
    assert "pagination" not in result


@pytest.mark.asyncio
async def test_timestamps_and_urls(posts_db):
    result = await service.get_collections("posts", ListingOptions(limit=1, order_by="created_at", order="asc"))
    item = result["items"][0]

    assert item["created_at"] == datetime.fromtimestamp(1_700_000_001, tz=timezone.utc)
    assert item["updated_at"] == datetime.fromtimestamp(1_700_000_001, tz=timezone.utc)
    assert item["url"] == "/blog/post-1"


@pytest.mark.asyncio
async def test_unknown_order_by_falls_back_to_default(posts_db):
    result = await service.get_collections("posts", ListingOptions(limit=1, order_by="nope"))
    assert _ids(result) == ["25"]


@pytest.mark.asyncio
async def test_status_filter(posts_db):
    posts_db.tables["collection_posts"][0]["status"] = "draft"

    published = await service.get_collections("posts")
    everything = await service.get_collections("posts", ListingOptions(status="all"))
    drafts = await service.get_collections("posts", ListingOptions(status="draft"))

    assert published["total"] == 24
    assert everything["total"] == 25
    assert _ids(drafts) == ["1"]


@pytest.mark.asyncio
async def test_status_ignored_without_status_column(fake_db):
    fake_db.add_type("collection", "notes", {})
    fake_db.add_table("collection_notes", [{"id": "1", "slug": "a"}, {"id": "2", "slug": "b"}])

    result = await service.get_collections("notes")

    assert result["total"] == 2


@pytest.mark.asyncio
async def test_single_item_by_slug_and_id(posts_db):
    by_slug = await service.get_collections("posts", ListingOptions(item_slug="post-3"))
    by_id = await service.get_collections("posts", ListingOptions(item_id="3"))

    assert by_slug["id"] == "3"
    assert by_id["slug"] == "post-3"
    assert [c["slug"] for c in by_slug["categories"]] == ["sports"]


@pytest.mark.asyncio
async def test_single_item_missing_or_draft_is_none(posts_db):
    posts_db.tables["collection_posts"][2]["status"] = "draft"

    assert await service.get_collections("posts", ListingOptions(item_slug="post-404")) is None
    assert await service.get_collections("posts", ListingOptions(item_slug="post-3")) is None
    draft = await service.get_collections("posts", ListingOptions(item_slug="post-3", status="draft"))
    assert draft["id"] == "3"


@pytest.mark.asyncio
async def test_missing_type_or_table(fake_db):
    assert await service.get_collections("ghost") == service.empty_result()
    assert await service.get_collections("ghost", ListingOptions(item_slug="x")) is None

    fake_db.add_type("collection", "tableless", {})
    assert await service.get_collections("tableless") == service.empty_result()


@pytest.mark.asyncio
async def test_query_failure_degrades_to_empty_result(posts_db):
    posts_db.failing_tables.add("collection_posts")
    assert await service.get_collections("posts") == service.empty_result()
    assert await service.get_collections("posts", ListingOptions(item_id="1")) is None


@pytest.mark.asyncio
async def test_parent_and_sibling_filters(fake_db):
    fake_db.add_type("collection", "docs", {})
    fake_db.add_table(
        "collection_docs",
        [
            {"id": "p", "slug": "p", "parent_id": None, "created_at": 1},
            {"id": "a", "slug": "a", "parent_id": "p", "created_at": 2},
            {"id": "b", "slug": "b", "parent_id": "p", "created_at": 3},
            {"id": "c", "slug": "c", "parent_id": "p", "created_at": 4},
            {"id": "d", "slug": "d", "parent_id": "q", "created_at": 5},
        ],
    )

    children = await service.get_collections("docs", ListingOptions(parent_id="p", order="asc"))
    siblings = await service.get_collections("docs", ListingOptions(sibling_of="a", order="asc"))
    with_self = await service.get_collections("docs", ListingOptions(sibling_of="a", exclude_current=False, order="asc"))
    of_root = await service.get_collections("docs", ListingOptions(sibling_of="p"))

    assert _ids(children) == ["a", "b", "c"]
    assert _ids(siblings) == ["b", "c"]
    assert _ids(with_self) == ["a", "b", "c"]
    assert of_root == {"items": [], "total": 0, "has_more": False}


@pytest.mark.asyncio
async def test_where_related(posts_db):
    direct = await service.get_collections(
        "posts",
        ListingOptions(where_related=WhereRelated(field="categories", value="news")),
    )
    recursive = await service.get_collections(
        "posts",
        ListingOptions(where_related=WhereRelated(field="categories", value="news", recursive=True), order="asc"),
    )
    several = await service.get_collections(
        "posts",
        ListingOptions(where_related=WhereRelated(field="categories", value=["local", "sports"]), order="asc"),
    )

    assert _ids(direct) == ["1"]
    assert _ids(recursive) == ["1", "2"]
    assert _ids(several) == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_where_related_on_non_relation_matches_nothing(posts_db):
    result = await service.get_collections(
        "posts",
        ListingOptions(where_related=WhereRelated(field="title", value="x")),
    )
    assert result == service.empty_result()


@pytest.mark.asyncio
async def test_group_by_tags(posts_db):
    posts_db.tags[("collection_posts", "1")] = [{"id": "t1", "name": "x", "slug": "x"}, {"id": "t2", "name": "y", "slug": "y"}]
    posts_db.tags[("collection_posts", "2")] = [{"id": "t1", "name": "x", "slug": "x"}]

    result = await service.get_collections(
        "posts",
        ListingOptions(include_tags=True, group_by="tags", order="asc", include_arrays_and_relations=False),
    )

    assert [i["id"] for i in result["grouped"]["x"]] == ["1", "2"]
    assert [i["id"] for i in result["grouped"]["y"]] == ["1"]


@pytest.mark.asyncio
async def test_group_by_scalar(posts_db):
    result = await service.get_collections("posts", ListingOptions(group_by="kind"))
    assert set(result["grouped"]) == {"news", "blog"}
    assert len(result["grouped"]["news"]) == 13
    assert len(result["grouped"]["blog"]) == 12


@pytest.mark.asyncio
async def test_include_authors_and_breadcrumbs(posts_db):
    result = await service.get_collections(
        "posts",
        ListingOptions(item_id="1", include_authors=True, include_breadcrumbs=True),
    )
    assert result["author"]["name"] == "Ada"
    assert result["breadcrumbs"] == []


@pytest.mark.asyncio
async def test_failing_item_is_returned_unenriched(posts_db, monkeypatch):
    original = users_service.populate_authors

    async def flaky(item):
        if item["id"] == "2":
            raise RuntimeError("boom")
        return await original(item)

    monkeypatch.setattr(users_service, "populate_authors", flaky)

    result = await service.get_collections("posts", ListingOptions(include_authors=True, limit=3, order="asc"))
    by_id = {item["id"]: item for item in result["items"]}

    assert _ids(result) == ["1", "2", "3"]
    assert by_id["1"]["author"]["name"] == "Ada"
    assert by_id["2"]["author"] == "u1"
    assert "url" not in by_id["2"]


@pytest.mark.asyncio
async def test_blocks_attached_when_requested(posts_db):
    posts_db.add_type("block", "quote", {"text": {"type": "string"}})
    posts_db.add_table("block_quote", [{"id": "q1", "collection_id": "1", "sort": 0, "text": "hi"}])

    plain = await service.get_collections("posts", ListingOptions(item_id="1"))
    with_blocks = await service.get_collections("posts", ListingOptions(item_id="1", include_blocks=True))

    assert "blocks" not in plain
    assert [b["id"] for b in with_blocks["blocks"]] == ["q1"]


@pytest.mark.asyncio
async def test_flat_global(fake_db):
    fake_db.add_type("global", "settings", {"logo": {"type": "file"}}, data_type="flat")
    fake_db.add_table("global_settings", [{"id": "settings", "site_name": "Example", "logo": "f1"}])
    fake_db.add_file("f1")

    listing = await service.get_globals("settings")
    single = await service.get_globals("settings", ListingOptions(item_slug="anything"))

    assert listing["site_name"] == "Example"
    assert listing["logo"]["id"] == "f1"
    assert single == listing
    assert "url" not in listing


@pytest.mark.asyncio
async def test_repeatable_global_orders_by_sort(fake_db):
    fake_db.add_type("global", "menu", {}, data_type="repeatable")
    fake_db.add_table(
        "global_menu",
        [
            {"id": "m1", "slug": "home", "sort": 2},
            {"id": "m2", "slug": "about", "sort": 1},
        ],
    )

    result = await service.get_globals("menu")

    assert _ids(result) == ["m2", "m1"]


@pytest.mark.asyncio
async def test_default_base_path_is_root(fake_db):
    fake_db.add_type("collection", "pages", {})
    fake_db.add_table("collection_pages", [{"id": "1", "slug": "about", "created_at": 1}])

    result = await service.get_collections("pages")

    assert result["items"][0]["url"] == "/about"
