from app.core.pagination import DEFAULT_LIMIT, MAX_LIMIT, Page, clamp_limit, clamp_page, effective_page


def test_limit_defaults_and_bounds():
    assert clamp_limit(None) == DEFAULT_LIMIT == 20
    assert clamp_limit(0) == 1
    assert clamp_limit(-5) == 1
    assert clamp_limit(500) == MAX_LIMIT == 100
    assert clamp_limit(35) == 35


def test_page_is_at_least_one():
    assert clamp_page(None) == 1
    assert clamp_page(0) == 1
    assert clamp_page(-3) == 1
    assert clamp_page(4) == 4


def test_page_past_the_end_clamps_to_last_page():
    assert effective_page(99999, 20, 5) == 1
    assert effective_page(7, 10, 45) == 5
    assert effective_page(2, 10, 45) == 2


def test_empty_collection_is_page_one():
    assert effective_page(3, 20, 0) == 1
    page = Page.empty(20)
    assert page.model_dump(by_alias=True) == {"items": [], "total": 0, "page": 1, "limit": 20, "hasMore": False}
