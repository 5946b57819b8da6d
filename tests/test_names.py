import pytest

import vkcpp_gen


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("PIPELINE_DEPTH_STENCIL_STATE_CREATE_INFO", "PipelineDepthStencilStateCreateInfo"),
        ("TYPE_2D", "Type2D"),
        ("A", "A"),
        ("", ""),
    ],
)
def test_to_camel_case(name: str, expected: str) -> None:
    assert vkcpp_gen.to_camel_case(name) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("PipelineDepthStencilStateCreateInfo", "PIPELINE_DEPTH_STENCIL_STATE_CREATE_INFO"),
        ("VkResult", "VK_RESULT"),
        ("Extent2D", "EXTENT2_D"),
        ("x", "x"),
    ],
)
def test_to_snake_case(name: str, expected: str) -> None:
    assert vkcpp_gen.to_snake_case(name) == expected


def test_camel_and_snake_round_trip_for_upper_snake_words() -> None:
    name = "IMAGE_MEMORY_BARRIER"
    assert vkcpp_gen.to_snake_case(vkcpp_gen.to_camel_case(name)) == name


def test_strip_vk_prefix_leaves_other_names_alone() -> None:
    assert vkcpp_gen.strip_vk_prefix("VkImage") == "Image"
    assert vkcpp_gen.strip_vk_prefix("uint32_t") == "uint32_t"


def test_convert_command_name() -> None:
    assert vkcpp_gen.convert_command_name("vkCreateInstance") == "createInstance"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("VK_FOO_BAR_KHR", ("VK_FOO_BAR", "KHR")),
        ("VkSurfaceFormatKHR", ("VkSurfaceFormat", "KHR")),
        ("VkDebugMarkerFlagsEXT", ("VkDebugMarkerFlags", "EXT")),
        ("VK_FORMAT_TEXT", ("VK_FORMAT_TEXT", "")),
        ("VkImageLayout", ("VkImageLayout", "")),
        ("VK_FOO_NVX", ("VK_FOO", "NVX")),
    ],
)
def test_split_tag_suffix(name: str, expected: tuple[str, str]) -> None:
    assert vkcpp_gen.split_tag_suffix(name) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("VkImageUsageFlags", "VkImageUsageFlagBits"),
        ("VkSurfaceTransformFlagsKHR", "VkSurfaceTransformFlagBitsKHR"),
        ("VkAccessFlags2", "VkAccessFlagBits2"),
    ],
)
def test_bit_flag_set_to_enum_name(name: str, expected: str) -> None:
    assert vkcpp_gen.bit_flag_set_to_enum_name(name) == expected


@pytest.mark.parametrize(
    ("expand", "enum", "value", "expected"),
    [
        ("", "VkImageLayout", "VK_IMAGE_LAYOUT_UNDEFINED", "eUndefined"),
        ("", "VkImageUsageFlagBits", "VK_IMAGE_USAGE_TRANSFER_SRC_BIT", "eTransferSrc"),
        ("", "VkResult", "VK_SUCCESS", "eSuccess"),
        ("", "VkResult", "VK_ERROR_SURFACE_LOST_KHR", "eErrorSurfaceLostKHR"),
        ("", "VkSampleCountFlagBits", "VK_SAMPLE_COUNT_1_BIT", "e1"),
        ("", "VkSurfaceTransformFlagBitsKHR", "VK_SURFACE_TRANSFORM_IDENTITY_BIT_KHR", "eIdentity"),
        ("", "VkAccessFlagBits2", "VK_ACCESS_2_SHADER_READ_BIT", "eShaderRead"),
        ("VK_COLOR_SPACE", "VkColorSpaceKHR", "VK_COLOR_SPACE_SRGB_NONLINEAR_KHR", "eSrgbNonlinear"),
        ("", "VkStructureType", "VK_STRUCTURE_TYPE_DEBUG_MARKER_INFO_EXT", "eDebugMarkerInfoEXT"),
    ],
)
def test_convert_enum_value_name(expand: str, enum: str, value: str, expected: str) -> None:
    assert vkcpp_gen.convert_enum_value_name(expand, enum, value) == expected


def test_struct_type_constant() -> None:
    assert (
        vkcpp_gen.struct_type_constant("ImageCreateInfo")
        == "VK_STRUCTURE_TYPE_IMAGE_CREATE_INFO"
    )
