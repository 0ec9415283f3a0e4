import pytest

from resolution.tables import TableLocator, junction_table_names, primary_table_name, side_table_name


def test_naming_convention():
    assert primary_table_name("collection", "blogPosts") == "collection_blog_posts"
    assert side_table_name("collection_posts", "galleryImages") == "collection_posts_gallery_images"
    assert junction_table_names("posts", "relatedPosts") == [
        "junction_posts_related_posts",
        "junction_posts_relatedPosts",
        "junction_posts_related_post",
    ]
    assert junction_table_names("posts", "tag") == ["junction_posts_tag"]


@pytest.mark.asyncio
async def test_locator_returns_none_for_missing_tables(fake_db):
    locator = TableLocator()
    assert await locator.primary("collection", "posts") is None
    assert await locator.locate("collection", "posts", ["sections", "images"]) is None


@pytest.mark.asyncio
async def test_locator_memoizes_probes(fake_db):
    fake_db.add_table("collection_posts", [{"id": "1", "slug": "a"}])
    locator = TableLocator()

    first = await locator.primary("collection", "posts")
    second = await locator.locate("collection", "posts")

    assert first is second
    assert first.has("slug")
    assert fake_db.probes == ["collection_posts"]


@pytest.mark.asyncio
async def test_locator_follows_field_path(fake_db):
    fake_db.add_table("collection_posts_sections_images", columns=("parent_id", "file_id"))
    handle = await TableLocator().locate("collection", "posts", ["sections", "images"])
    assert handle.name == "collection_posts_sections_images"


@pytest.mark.asyncio
async def test_junction_falls_back_to_singular_name(fake_db):
    fake_db.add_table("junction_posts_category", columns=("collection_id", "target_id"))
    handle = await TableLocator().junction("posts", "categorys")
    assert handle.name == "junction_posts_category"


@pytest.mark.asyncio
async def test_unsafe_names_are_never_probed(fake_db):
    locator = TableLocator()
    assert await locator.probe("collection_posts; drop table users") is None
    assert fake_db.probes == []
