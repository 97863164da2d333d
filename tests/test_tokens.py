import io

import pytest

from dtagkv.tokens import TokenIter, line_to_tokens, read_tokens


def test_line_to_tokens_splits_on_spaces_and_newlines():
    assert line_to_tokens("set  key 0102\n", 8) == ["set", "key", "0102"]


def test_line_to_tokens_keeps_tabs_inside_tokens():
    assert line_to_tokens("a\tb c", 8) == ["a\tb", "c"]


def test_line_to_tokens_limits_to_capacity_minus_one():
    assert line_to_tokens("a b c d", 3) == ["a", "b"]


def test_line_to_tokens_empty_line():
    assert line_to_tokens(" \n", 4) == []


def test_line_to_tokens_rejects_small_capacity():
    with pytest.raises(ValueError):
        line_to_tokens("a b", 1)


def test_read_tokens_line_by_line_until_eof():
    stream = io.StringIO("x y\nz\n")
    first = read_tokens(stream, 4)
    second = read_tokens(stream, 4)
    assert first.tokens == ["x", "y"]
    assert second.tokens == ["z"]
    assert read_tokens(stream, 4) is None


def test_read_tokens_rejects_small_capacity():
    with pytest.raises(ValueError):
        read_tokens(io.StringIO("a\n"), 0)


def test_iter_top_does_not_consume():
    it = TokenIter(["a", "b"])
    assert it.top() == "a"
    assert it.top() == "a"
    assert it.remain() == ["a", "b"]


def test_iter_pop_in_order_then_none():
    it = TokenIter(["a", "b"])
    assert it.pop() == "a"
    assert it.pop() == "b"
    assert it.pop() is None
    assert it.top() is None
    assert it.remain() == []


def test_iter_remain_after_pop():
    it = TokenIter(["k1", "v1", "k2"])
    it.pop()
    assert it.remain() == ["v1", "k2"]


def test_iter_empty_string_is_a_token():
    it = TokenIter([""])
    assert it.pop() == ""
    assert it.pop() is None