from __future__ import annotations

from repair_desk.identity import ID_PATTERN, OrderIdGenerator, generate_order_id, is_valid_order_id


def test_thousand_ids_are_distinct_and_well_formed() -> None:
    ids = [generate_order_id() for _ in range(1000)]
    assert len(set(ids)) == 1000
    for value in ids:
        assert ID_PATTERN.match(value), value
        assert len(value) <= 36
        assert not value.startswith("_")


def test_time_component_never_repeats_for_a_frozen_clock() -> None:
    gen = OrderIdGenerator(clock=lambda: 1000, token=lambda n: "a" * n)
    first = gen.generate()
    second = gen.generate()
    assert first == "rs_aaaaaaaa"
    assert second == "rt_aaaaaaaa"


def test_clock_going_backwards_keeps_ids_increasing() -> None:
    ticks = iter([5000, 4000, 4500])
    gen = OrderIdGenerator(clock=lambda: next(ticks), token=lambda n: "z" * n)
    prefixes = [int(gen.generate().split("_")[0], 36) for _ in range(3)]
    assert prefixes == [5000, 5001, 5002]


def test_illegal_characters_are_sanitised() -> None:
    gen = OrderIdGenerator(clock=lambda: 36, token=lambda n: "-." * n)
    value = gen.generate()
    assert value.startswith("10_")
    assert is_valid_order_id(value)
    assert len(value) <= 36


def test_is_valid_order_id() -> None:
    assert is_valid_order_id("abc_123")
    assert not is_valid_order_id("_abc")
    assert not is_valid_order_id("")
    assert not is_valid_order_id("a-b")
    assert not is_valid_order_id("a" * 37)
    assert is_valid_order_id("a" * 36)
