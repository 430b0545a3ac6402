import pytest

from orm.filters import ByColumnEquals, ByColumnOp, ByDefaultColumn, to_filter


class TestToFilter:

    def test_one_argument(self):
        assert to_filter(3) == ByDefaultColumn(3)

    def test_two_arguments(self):
        assert to_filter("name", "Ana") == ByColumnEquals("name", "Ana")

    def test_three_arguments(self):
        assert to_filter("age", ">", 25) == ByColumnOp("age", ">", 25)

    def test_ready_filter_passes_through(self):
        f = ByColumnOp("age", "<", 5)
        assert to_filter(f) is f

    @pytest.mark.parametrize("args", [(), (1, 2, 3, 4)])
    def test_bad_arity(self, args):
        with pytest.raises(TypeError):
            to_filter(*args)
