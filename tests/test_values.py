import time

import pytest

from dashdotcache.values import (
    Entry,
    Stats,
    Ttl,
    format_value,
    type_name,
    value_memory_usage,
)


@pytest.mark.parametrize(
    "value, name",
    [
        ("value1", "string"),
        (42, "integer"),
        (1.5, "float"),
        (b"\x00\x01", "bytes"),
        ({"a": 1}, "hash"),
        ([1, 2], "list"),
        ({"x"}, "set"),
    ],
)
def test_type_name(value, name):
    assert type_name(value) == name


@pytest.mark.parametrize("value", [True, None, object(), (1, 2)])
def test_unsupported_types_rejected(value):
    with pytest.raises(TypeError):
        type_name(value)


@pytest.mark.parametrize(
    "value, text",
    [
        ("value1", "value1"),
        (42, "42"),
        (1.5, "1.5"),
        (2.0, "2"),
        (b"abc", "3 bytes"),
        ({"a": "1", "b": "2"}, "hash with 2 fields"),
        (["a", "b", "c"], "list with 3 items"),
        ({"m"}, "set with 1 members"),
    ],
)
def test_format_value(value, text):
    assert format_value(value) == text


def test_format_float_without_exponent():
    assert "e" not in format_value(1e20)
    assert format_value(1e20).startswith("1")
    assert float(format_value(1e-7)) == 1e-7


def test_memory_usage_of_scalars():
    assert value_memory_usage("ok") == 2
    assert value_memory_usage(b"abcd") == 4
    assert value_memory_usage(7) == value_memory_usage(7.0)


def test_memory_usage_grows_with_content():
    assert value_memory_usage("x" * 200) > value_memory_usage("ok")
    small = value_memory_usage({"a": "1"})
    large = value_memory_usage({"a": "1", "b": "22"})
    assert large - small == value_memory_usage("22") + 1
    assert value_memory_usage(["ab", "cd"]) - value_memory_usage([]) == 4
    assert value_memory_usage({"abc"}) - value_memory_usage(set()) == 3


def test_ttl_expires():
    ttl = Ttl(0.001)
    time.sleep(0.01)
    assert ttl.is_expired()
    assert ttl.remaining() is None


def test_ttl_remaining_within_duration():
    ttl = Ttl(100)
    left = ttl.remaining()
    assert 0 < left <= 100
    assert not ttl.is_expired()


def test_fixed_ttl_does_not_reset():
    ttl = Ttl(100)
    before = ttl.expires_at
    time.sleep(0.005)
    ttl.reset()
    assert ttl.expires_at == before


def test_sliding_ttl_resets():
    ttl = Ttl.sliding(100)
    assert ttl.is_sliding
    before = ttl.expires_at
    time.sleep(0.005)
    ttl.reset()
    assert ttl.expires_at > before


def test_entry_without_ttl_or_parent_is_valid():
    entry = Entry("v")
    assert entry.is_valid({})


def test_entry_with_expired_ttl_is_invalid():
    entry = Entry("temp_value", ttl=Ttl(0.001))
    time.sleep(0.01)
    assert not entry.is_valid({})


def test_entry_with_missing_parent_is_invalid():
    child = Entry("child_value", parent="parent")
    data = {"parent": Entry("parent_value"), "child": child}
    assert child.is_valid(data)
    del data["parent"]
    assert not child.is_valid(data)


def test_entry_invalid_when_ancestor_expired():
    grandparent = Entry("g", ttl=Ttl(0.001))
    parent = Entry("p", parent="g")
    child = Entry("c", parent="p")
    data = {"g": grandparent, "p": parent, "c": child}
    time.sleep(0.01)
    assert not child.is_valid(data)


def test_mark_accessed_counts_and_slides():
    entry = Entry("v", ttl=Ttl.sliding(100))
    before = entry.ttl.expires_at
    time.sleep(0.005)
    entry.mark_accessed()
    entry.mark_accessed()
    assert entry.access_count == 2
    assert entry.ttl.expires_at > before
    assert entry.last_accessed >= entry.created_at


def test_entry_memory_usage_includes_value_and_parent():
    plain = Entry("ok")
    with_parent = Entry("ok", parent="parent")
    assert with_parent.memory_usage() - plain.memory_usage() == len("parent")
    assert Entry("x" * 200).memory_usage() - plain.memory_usage() == 198


def test_stats_render_format():
    stats = Stats(hits=3, misses=1, sets=2, deletes=0, memory_usage=128)
    text = stats.render()
    assert text.startswith(
        "# HELP cache_hits_total Total number of cache hits\n"
        "# TYPE cache_hits_total counter\n"
        "cache_hits_total 3\n"
    )
    assert "cache_misses_total 1\n" in text
    assert "cache_sets_total 2\n" in text
    assert "cache_deletes_total 0\n" in text
    assert "# TYPE cache_memory_usage_bytes gauge\n" in text
    assert text.endswith("cache_memory_usage_bytes 128\n")
    assert len(text.splitlines()) == 15