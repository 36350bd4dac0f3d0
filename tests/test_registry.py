import pytest

from ulogkit.model import (
    ULOG_CRIT,
    ULOG_DEBUG,
    ULOG_ERR,
    ULOG_INFO,
    ULOG_NOTICE,
    ULOG_WARN,
)
from ulogkit.registry import (
    Cookie,
    TagRegistry,
    mask_to_level,
    parse_tag_level,
    prio_to_char,
)


@pytest.mark.parametrize(
    "c, level",
    [
        ("C", ULOG_CRIT),
        ("E", ULOG_ERR),
        ("W", ULOG_WARN),
        ("N", ULOG_NOTICE),
        ("I", ULOG_INFO),
        ("D", ULOG_DEBUG),
        ("3", 3),
        ("9", ULOG_DEBUG),
        ("A", 0),
        ("c", 0),
        ("-", 0),
    ],
)
def test_parse_tag_level(c, level):
    assert parse_tag_level(c) == level


@pytest.mark.parametrize(
    "prio, char",
    [
        (ULOG_CRIT, "C"),
        (ULOG_ERR, "E"),
        (ULOG_WARN, "W"),
        (ULOG_NOTICE, "N"),
        (ULOG_INFO, "I"),
        (ULOG_DEBUG, "D"),
        (0, " "),
        (1, " "),
        (-1, " "),
        (8, " "),
    ],
)
def test_prio_to_char(prio, char):
    assert prio_to_char(prio) == char


def test_prio_char_round_trip():
    for level in range(ULOG_CRIT, ULOG_DEBUG + 1):
        assert parse_tag_level(prio_to_char(level)) == level


def test_mask_to_level_clamps():
    assert mask_to_level(0) == ULOG_CRIT
    assert mask_to_level(1) == ULOG_CRIT
    assert mask_to_level(-1) == ULOG_DEBUG
    assert mask_to_level(0xFF) == ULOG_DEBUG


def test_mask_to_level_highest_bit():
    for level in range(ULOG_CRIT, ULOG_DEBUG + 1):
        assert mask_to_level(1 << level) == level
        assert mask_to_level((1 << (level + 1)) - 1) == level


def test_default_tag():
    registry = TagRegistry()
    assert registry.tag_names() == ["threadx"]
    assert registry.get_tag_level("threadx") == ULOG_INFO


def test_register_gives_default_level():
    registry = TagRegistry()
    cookie = Cookie("net")
    registry.register(cookie)
    assert cookie.level == ULOG_INFO
    assert registry.tag_names() == ["net", "threadx"]


def test_register_follows_default_cookie_level():
    registry = TagRegistry()
    registry.set_tag_level("threadx", ULOG_DEBUG)
    cookie = Cookie("video")
    assert registry.get_level(cookie) == ULOG_DEBUG


def test_register_twice_keeps_single_entry():
    registry = TagRegistry()
    cookie = Cookie("net")
    registry.register(cookie)
    registry.set_level(cookie, ULOG_WARN)
    registry.register(cookie)
    assert registry.tag_names().count("net") == 1
    assert cookie.level == ULOG_WARN


def test_set_level_clamps():
    registry = TagRegistry()
    cookie = Cookie("net")
    registry.set_level(cookie, 42)
    assert cookie.level == ULOG_DEBUG
    registry.set_level(cookie, -5)
    assert cookie.level == 0


def test_set_level_registers_cookie():
    registry = TagRegistry()
    cookie = Cookie("audio")
    registry.set_level(cookie, ULOG_ERR)
    assert registry.get_tag_level("audio") == ULOG_ERR


def test_set_tag_level_by_name():
    registry = TagRegistry()
    cookie = Cookie("net")
    registry.register(cookie)
    registry.set_tag_level("net", ULOG_NOTICE)
    assert cookie.level == ULOG_NOTICE
    assert registry.get_tag_level("net") == ULOG_NOTICE


def test_unknown_tag_raises():
    registry = TagRegistry()
    with pytest.raises(KeyError):
        registry.set_tag_level("missing", ULOG_INFO)
    with pytest.raises(KeyError):
        registry.get_tag_level("missing")


def test_tag_names_maxlen():
    registry = TagRegistry()
    for name in ("a", "b", "c"):
        registry.register(Cookie(name))
    assert registry.tag_names(2) == ["c", "b"]
    assert registry.tag_names(0) == []
    assert len(registry.tag_names(10)) == len(registry)


def test_foreach_visits_all():
    registry = TagRegistry()
    for name in ("a", "b"):
        registry.register(Cookie(name))
    seen = []
    registry.foreach(lambda cookie: seen.append(cookie.name))
    assert seen == registry.tag_names()


def test_foreach_can_set_all_levels():
    registry = TagRegistry()
    registry.register(Cookie("a"))
    registry.foreach(lambda cookie: registry.set_level(cookie, ULOG_ERR))
    assert all(cookie.level == ULOG_ERR for cookie in registry)


def test_foreach_rejects_non_callable():
    registry = TagRegistry()
    with pytest.raises(TypeError):
        registry.foreach(None)


def test_custom_default_cookie():
    registry = TagRegistry(Cookie("main", ULOG_WARN))
    cookie = registry.register(Cookie("x"))
    assert cookie.level == ULOG_WARN
    assert registry.tag_names() == ["x", "main"]