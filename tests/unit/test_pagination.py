"""
Unit tests for jobboard/pagination.py - windowed page numbers.
"""

import pytest

from jobboard.pagination import ELLIPSIS, page_window


class TestPageWindow:

    def test_near_start(self):
        assert page_window(1, 10) == [1, 2, 3, 4, ELLIPSIS, 10]

    def test_near_end(self):
        assert page_window(10, 10) == [1, ELLIPSIS, 7, 8, 9, 10]

    def test_middle(self):
        assert page_window(5, 10) == [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]

    @pytest.mark.parametrize("total", [1, 2, 3, 4, 5])
    def test_five_or_fewer_pages_lists_all(self, total):
        for current in range(1, total + 1):
            assert page_window(current, total) == list(range(1, total + 1))

    def test_boundaries_of_the_start_window(self):
        assert page_window(3, 10) == [1, 2, 3, 4, ELLIPSIS, 10]
        assert page_window(4, 10) == [1, ELLIPSIS, 3, 4, 5, ELLIPSIS, 10]

    def test_boundaries_of_the_end_window(self):
        assert page_window(8, 10) == [1, ELLIPSIS, 7, 8, 9, 10]
        assert page_window(7, 10) == [1, ELLIPSIS, 6, 7, 8, ELLIPSIS, 10]

    def test_no_pages(self):
        assert page_window(1, 0) == []

    def test_first_and_last_page_always_present(self):
        for current in range(1, 21):
            window = page_window(current, 20)
            assert window[0] == 1
            assert window[-1] == 20
            assert current in window
