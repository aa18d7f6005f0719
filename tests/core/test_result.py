from __future__ import annotations

import pytest

from src.school_transport.school_transport.common.validators import normalize_paging
from src.school_transport.school_transport.core.exceptions import NotFoundError, ValidationError
from src.school_transport.school_transport.core.result import PagedResult, Result, service_result


class Widgets:
    @service_result("Could not load widget")
    def load(self, kind):
        if kind == "missing":
            raise NotFoundError("Widget not found")
        if kind == "bad":
            raise ValidationError("Widget name is required")
        if kind == "boom":
            raise RuntimeError("db down")
        if kind == "result":
            return Result.failure("already wrapped", errors=["x"])
        return {"kind": kind}


def test_plain_value_is_wrapped():
    result = Widgets().load("ok")
    assert result.is_success
    assert result.value == {"kind": "ok"}


def test_not_found_sets_flag():
    result = Widgets().load("missing")
    assert result.is_failure
    assert result.not_found
    assert result.error == "Widget not found"


def test_domain_error_message_is_kept():
    result = Widgets().load("bad")
    assert result.error == "Widget name is required"
    assert not result.not_found


def test_unexpected_error_is_masked():
    result = Widgets().load("boom")
    assert result.error == "Could not load widget"


def test_returned_result_passes_through():
    result = Widgets().load("result")
    assert result.error == "already wrapped"
    assert result.errors == ("x",)


@pytest.mark.parametrize(
    "total,page,size,pages,prev,nxt",
    [
        (0, 1, 20, 0, False, False),
        (45, 1, 20, 3, False, True),
        (45, 3, 20, 3, True, False),
        (40, 2, 20, 2, True, False),
    ],
)
def test_paged_result_navigation(total, page, size, pages, prev, nxt):
    paged = PagedResult(items=[], total_count=total, page=page, page_size=size)
    assert paged.total_pages == pages
    assert paged.has_previous_page is prev
    assert paged.has_next_page is nxt


def test_paging_is_clamped():
    assert normalize_paging(None, None) == (1, 20)
    assert normalize_paging("0", "500") == (1, 100)
    with pytest.raises(ValidationError):
        normalize_paging("abc", "10")
