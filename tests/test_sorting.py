import pytest

import vkcpp_gen


def _record(name: str, *members: tuple[str, str]) -> vkcpp_gen.AggregateRecord:
    return vkcpp_gen.AggregateRecord(
        name=vkcpp_gen.strip_vk_prefix(name),
        native_name=name,
        members=tuple(
            vkcpp_gen.Member(
                name=f"m{i}",
                type=type_name,
                native_type=type_name,
                descriptor=vkcpp_gen.analyze_type(type_name, extra),
            )
            for i, (type_name, extra) in enumerate(members)
        ),
    )


def _names(records: tuple[vkcpp_gen.AggregateRecord, ...]) -> list[str]:
    return [r.native_name for r in records]


def test_embedded_records_come_first() -> None:
    a = _record("VkA", ("VkB", ""))
    b = _record("VkB", ("VkC", "[2]"))
    c = _record("VkC", ("uint32_t", ""))

    assert _names(vkcpp_gen.sort_records_by_dependencies([a, b, c])) == ["VkC", "VkB", "VkA"]


def test_pointer_members_are_not_dependencies() -> None:
    a = _record("VkA", ("VkB", "const *"))
    b = _record("VkB", ("VkA", "*"))

    assert _names(vkcpp_gen.sort_records_by_dependencies([b, a])) == ["VkA", "VkB"]


def test_ready_records_are_ordered_by_name() -> None:
    records = [_record(n) for n in ("VkZeta", "VkAlpha", "VkMid")]

    assert _names(vkcpp_gen.sort_records_by_dependencies(records)) == [
        "VkAlpha",
        "VkMid",
        "VkZeta",
    ]


def test_output_is_independent_of_input_order() -> None:
    a = _record("VkA", ("VkC", ""))
    b = _record("VkB", ("VkC", ""))
    c = _record("VkC")

    first = vkcpp_gen.sort_records_by_dependencies([a, b, c])
    second = vkcpp_gen.sort_records_by_dependencies([c, b, a])

    assert first == second
    assert _names(first) == ["VkC", "VkA", "VkB"]


def test_alias_dependency_resolves_to_target() -> None:
    a = _record("VkA", ("VkZedKHR", ""))
    zed = _record("VkZed")

    ordered = vkcpp_gen.sort_records_by_dependencies([a, zed], {"VkZedKHR": "VkZed"})

    assert _names(ordered) == ["VkZed", "VkA"]


def test_cycle_is_fatal() -> None:
    a = _record("VkA", ("VkB", ""))
    b = _record("VkB", ("VkA", ""))
    c = _record("VkC")

    with pytest.raises(vkcpp_gen.DependencyCycleError) as exc_info:
        vkcpp_gen.sort_records_by_dependencies([a, b, c])

    assert exc_info.value.names == ("VkA", "VkB")
    assert isinstance(exc_info.value, RuntimeError)


def test_empty_input() -> None:
    assert vkcpp_gen.sort_records_by_dependencies([]) == ()
