"""Tests for tail-first pagination."""

import pytest

from canary.pagination import Page, paginate


class TestPaginate:
    def test_default_returns_newest_page(self):
        seq = list(range(120))
        page = paginate(seq)
        assert page.data == list(range(70, 120))
        assert page.last == 70

    def test_short_sequence_fits_one_page(self):
        page = paginate([1, 2, 3])
        assert page.data == [1, 2, 3]
        assert page.last == 0

    def test_empty_sequence(self):
        assert paginate([]) == Page(data=[], last=0)

    def test_from_beyond_length_is_clamped(self):
        page = paginate(list(range(10)), from_=500, page_size=4)
        assert page.data == [6, 7, 8, 9]
        assert page.last == 6

    def test_negative_from_gives_empty_page(self):
        assert paginate(list(range(10)), from_=-3) == Page(data=[], last=0)

    def test_zero_from_gives_empty_page(self):
        assert paginate(list(range(10)), from_=0) == Page(data=[], last=0)

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            paginate([1], page_size=0)

    @pytest.mark.parametrize("length,page_size", [(0, 50), (1, 50), (50, 50), (51, 50), (237, 50), (10, 3)])
    def test_walking_visits_every_element_once(self, length, page_size):
        seq = list(range(length))
        page = paginate(seq, page_size=page_size)
        assert page.last == max(0, length - page_size)
        assert len(page.data) == min(length, page_size)

        seen = list(page.data)
        pages = [page]
        while page.last != 0:
            page = paginate(seq, page.last, page_size)
            seen = page.data + seen
            pages.append(page)

        assert seen == seq
        assert pages[-1].last == 0

    def test_to_dict_encodes_items(self):
        page = Page(data=[1, 2], last=0)
        assert page.to_dict() == {"last": 0, "data": [1, 2]}
        assert page.to_dict(lambda item: item * 10) == {"last": 0, "data": [10, 20]}
