"""Vulkan C++ bindings generator.

Generates a type-safe C++ wrapper header from the Khronos vk.xml registry.
Writes the header to stdout unless an output file is given.

Usage:
    python vkcpp_gen.py path/to/vk.xml -o vulkan.hpp
"""

import argparse
import os
import re
import sys
import tempfile
import xml.etree.ElementTree as ET
from collections import defaultdict
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

import jinja2


def log(message: str) -> None:
    """Diagnostics go to stderr so stdout stays reserved for the header."""
    print(message, file=sys.stderr)


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class HeaderParams:
    guard_begin: str = "#pragma once"
    guard_end: str = ""
    namespace: str = "vk"


@dataclass(frozen=True)
class GenerateConfig:
    spec_path: Path
    output_path: Path | None
    header: HeaderParams = field(default_factory=HeaderParams)


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
    "OUTPUT_IS_DIRECTORY",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_path_exists(path: Path, label: str) -> Path:
    if path.is_file():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"{label} does not exist or is not a file: {path}",
        "Pass the path to a Vulkan registry, for example Vulkan-Docs/xml/vk.xml.",
    )


def validate_output_path(path: Path | None) -> Path | None:
    if path is None or not path.is_dir():
        return path
    raise ConfigError(
        "OUTPUT_IS_DIRECTORY",
        f"Output path is a directory: {path}",
        "Pass a file name, for example -o vulkan.hpp.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vkcpp-gen",
        description=(
            "Convert the Vulkan XML specification into a C++ header. "
            "Writes to STDOUT, unless an output file is specified."
        ),
    )
    parser.add_argument("spec_file", type=Path, help="Path to vk.xml")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write output to file instead of STDOUT",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig:
    return GenerateConfig(
        spec_path=validate_path_exists(args.spec_file, "Specification file"),
        output_path=validate_output_path(args.output),
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

KNOWN_TAGS = (
    "KHR",
    "EXT",
    "NVX",
    "NV",
    "AMDX",
    "AMD",
    "ANDROID",
    "ARM",
    "FUCHSIA",
    "GGP",
    "GOOGLE",
    "HUAWEI",
    "IMG",
    "INTEL",
    "LUNARG",
    "MESA",
    "MSFT",
    "MVK",
    "NN",
    "QCOM",
    "QNX",
    "SEC",
    "VALVE",
)

# Native names already declared by the fixed prelude of the template.
PRELUDE_BASE_TYPES = {
    "VkSampleMask",
    "VkBool32",
    "VkDeviceSize",
}

FLAG_STORAGE_TYPES = {"VkFlags", "VkFlags64"}

# vulkan.h has no counterpart for these registry records.
EXCLUDED_RECORD_NAMES = frozenset({"VkRect3D"})

RESULT_ENUM = "VkResult"


# ===--- Errors ---=== #


class TypeDescriptorError(ValueError):
    """A type suffix has a malformed array marker."""


class UnknownConstantError(ValueError):
    """An array length refers to a constant missing from API Constants."""


class DependencyCycleError(RuntimeError):
    def __init__(self, names: Sequence[str]):
        super().__init__(
            "circular dependencies detected between records: " + ", ".join(names)
        )
        self.names = tuple(names)


class GenerationError(Exception):
    """A fatal failure, tagged with the pipeline stage that raised it."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


# ===--- Name mapping ---=== #


def strip_vk_prefix(name: str) -> str:
    return name.removeprefix("Vk")


def convert_command_name(name: str) -> str:
    name = name.removeprefix("vk")
    return name[:1].lower() + name[1:]


def to_camel_case(name: str) -> str:
    """PIPELINE_DEPTH_STENCIL_STATE_CREATE_INFO -> PipelineDepthStencilStateCreateInfo"""
    if len(name) <= 1:
        return name
    out = []
    prev = ""
    for i, ch in enumerate(name):
        if ch != "_":
            if i == 0 or prev == "_" or prev.isdigit():
                out.append(ch)
            else:
                out.append(ch.lower())
        prev = ch
    return "".join(out)


def to_snake_case(name: str) -> str:
    """PipelineDepthStencilStateCreateInfo -> PIPELINE_DEPTH_STENCIL_STATE_CREATE_INFO"""
    if len(name) <= 1:
        return name
    out = []
    prev = ""
    for i, ch in enumerate(name):
        if i != 0 and ch.isupper() and (prev.islower() or prev.isdigit()):
            out.append("_")
        out.append(ch.upper())
        prev = ch
    return "".join(out)


def split_tag_suffix(name: str) -> tuple[str, str]:
    """Split a trailing vendor tag off a native name.

    Both spellings are recognized: ``VK_FOO_BAR_KHR`` and ``VkFooBarKHR``.
    A bare tag only counts when it follows a lower-case letter or a digit,
    so ``VK_FORMAT_TEXT`` keeps its ``EXT``.
    """
    for tag in KNOWN_TAGS:
        if name.endswith("_" + tag):
            return name[: -len(tag) - 1], tag
        if len(name) > len(tag) and name.endswith(tag):
            before = name[-len(tag) - 1]
            if before.islower() or before.isdigit():
                return name[: -len(tag)], tag
    return name, ""


_FLAGS_RE = re.compile(r"^(?P<base>.*)Flags(?P<rev>\d*)$")
_FLAG_BITS_RE = re.compile(r"^(?P<base>.*)FlagBits(?P<rev>\d*)$")


def bit_flag_set_to_enum_name(name: str) -> str:
    """VkFooFlagsKHR -> VkFooFlagBitsKHR, VkFooFlags2 -> VkFooFlagBits2"""
    base, tag = split_tag_suffix(name)
    match = _FLAGS_RE.match(base)
    if match:
        base = f"{match.group('base')}FlagBits{match.group('rev')}"
    return base + tag


def enum_value_prefix(enum_name: str) -> str:
    """Snake-case prefix shared by the values of an enumeration.

    VkImageLayout -> VK_IMAGE_LAYOUT, VkAccessFlagBits2 -> VK_ACCESS_2
    """
    base, _ = split_tag_suffix(enum_name)
    match = _FLAG_BITS_RE.match(base)
    if match is None:
        return to_snake_case(base)
    prefix = to_snake_case(match.group("base"))
    if match.group("rev"):
        prefix += "_" + match.group("rev")
    return prefix


def convert_enum_value_name(expand: str, enum_name: str, name: str) -> str:
    if expand and name.startswith(expand):
        name = name[len(expand) :].lstrip("_")
    else:
        prefix = enum_value_prefix(enum_name) + "_"
        if name.startswith(prefix):
            name = name[len(prefix) :]

    if enum_name == RESULT_ENUM:
        name = name.removeprefix("VK_")

    _, enum_tag = split_tag_suffix(enum_name)
    name, tag = split_tag_suffix(name)
    name = name.removesuffix("_BIT")
    name = to_camel_case(name)
    if tag and tag != enum_tag:
        name += tag
    return "e" + name


def struct_type_constant(name: str) -> str:
    return "VK_STRUCTURE_TYPE_" + to_snake_case(name)


# ===--- Type analysis ---=== #


@dataclass(frozen=True)
class TypeDescriptor:
    """Structured view of the text around a type name.

    ``extra`` is the raw suffix fragment, e.g. ``const *`` for
    ``const VkFoo* pFoo`` or ``[4]`` for ``float color[4]``. ``prefix`` and
    ``suffix`` are spliced verbatim around a type name to build casts.
    """

    type_name: str
    extra: str = ""
    is_const: bool = False
    is_pointer: bool = False
    is_blank: bool = False
    is_array: bool = False
    arity: int = 0
    element_count: int = 0
    prefix: str = ""
    suffix: str = ""


_ARRAY_MARKER_RE = re.compile(r"\[([^\[\]]*)\]")
_ARRAY_MARKERS_RE = re.compile(r"(?:\[[^\[\]]*\])+")
_NAME_ARRAY_RE = re.compile(r"^(?P<name>.*?)(?P<marker>\[\d+\])$")
_BITFIELD_RE = re.compile(r":\s*(\d+)$")


def _parse_arity(type_name: str, extra: str) -> tuple[int, int]:
    """Return the trailing length and the total element count of an array."""
    if extra.count("[") != extra.count("]") or "[" not in extra:
        raise TypeDescriptorError(
            f"unmatched array bracket in type suffix {extra!r} of {type_name}"
        )
    lengths = []
    for length in _ARRAY_MARKER_RE.findall(extra):
        length = length.strip()
        if not length.isdigit():
            raise TypeDescriptorError(
                f"invalid array length {length!r} in type suffix {extra!r} of {type_name}"
            )
        lengths.append(int(length))
    if not lengths:
        raise TypeDescriptorError(
            f"unmatched array bracket in type suffix {extra!r} of {type_name}"
        )
    element_count = 1
    for length in lengths:
        element_count *= length
    return lengths[-1], element_count


def analyze_type(type_name: str, extra: str) -> TypeDescriptor:
    extra = extra.strip()
    if not extra:
        return TypeDescriptor(type_name, is_blank=True)

    is_const = extra == "const" or extra.startswith("const ")
    rest = extra.removeprefix("const").lstrip() if is_const else extra

    is_array = False
    arity = 0
    element_count = 0
    if "[" in rest or "]" in rest:
        arity, element_count = _parse_arity(type_name, rest)
        is_array = True

    return TypeDescriptor(
        type_name=type_name,
        extra=extra,
        is_const=is_const,
        is_pointer=is_array or any(ch in rest for ch in "*[]"),
        is_array=is_array,
        arity=arity,
        element_count=element_count,
        prefix="const " if is_const else "",
        suffix=_ARRAY_MARKERS_RE.sub("*", rest),
    )


def assemble_type(type_name: str, extra: str) -> str:
    """Spell a declaration's type, with array markers decayed to a pointer."""
    extra = extra.strip()
    out = type_name
    if extra == "const" or extra.startswith("const "):
        out = "const " + out
        extra = extra.removeprefix("const").strip()
    if extra.startswith("[") and extra.endswith("]"):
        extra = "*"
    return out + extra


def fix_name_array_suffix(name: str, extra: str) -> tuple[str, str]:
    """Move an array marker written on the declarator name onto the suffix.

    Some registry revisions spell ``<name>foo[2]</name>``.
    """
    match = _NAME_ARRAY_RE.match(name)
    if match is None:
        return name, extra
    return match.group("name"), extra.rstrip() + match.group("marker")


def split_bitfield(extra: str) -> tuple[str, int | None]:
    extra = extra.strip()
    match = _BITFIELD_RE.search(extra)
    if match is None:
        return extra, None
    return extra[: match.start()].rstrip(), int(match.group(1))


# ===--- Converters ---=== #


@dataclass(frozen=True)
class Converter:
    """Renders the C++ that moves one value between wrapper and native form.

    to_native_arg: expression passed to a native entry point.
    to_native:     statement storing a wrapper value into a native field.
    from_native:   statement returning a native field as a wrapper value.
    """

    wrapper_name: str = ""
    native_name: str = ""

    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        raise NotImplementedError

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        raise NotImplementedError

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        raise NotImplementedError

    def _reinterpret(self) -> "ReinterpretConverter":
        return ReinterpretConverter(self.wrapper_name, self.native_name)

    def _value_cast(self) -> "ValueCastConverter":
        return ValueCastConverter(self.wrapper_name, self.native_name)


class PassThroughConverter(Converter):
    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        return src

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        return f"{dst} = {src};"

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        return f"return {src};"


PASS_THROUGH = PassThroughConverter()


class ValueCastConverter(Converter):
    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().to_native_arg(desc, src)
        return f"static_cast<{self.native_name}>({src})"

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().to_native(desc, src, dst)
        return f"{dst} = static_cast<{self.native_name}>({src});"

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().from_native(desc, src)
        return f"return static_cast<{self.wrapper_name}>({src});"


class BitFlagConverter(Converter):
    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().to_native_arg(desc, src)
        return f"static_cast<{self.native_name}>({src})"

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().to_native(desc, src, dst)
        return f"{dst} = static_cast<{self.native_name}>({src});"

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        if desc.is_pointer:
            return self._reinterpret().from_native(desc, src)
        return f"return {self.wrapper_name}({src});"


class HandleConverter(BitFlagConverter):
    """Handles convert like bit-flag sets: explicit cast in, constructor out."""


class ReinterpretConverter(Converter):
    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        if not desc.is_pointer:
            return self._value_cast().to_native_arg(desc, src)
        return f"reinterpret_cast<{desc.prefix}{self.native_name}{desc.suffix}>({src})"

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        if not desc.is_pointer:
            return self._value_cast().to_native(desc, src, dst)
        return (
            f"{dst} = reinterpret_cast<{desc.prefix}{self.native_name}{desc.suffix}>"
            f"({src});"
        )

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        if not desc.is_pointer:
            return self._value_cast().from_native(desc, src)
        return (
            f"return reinterpret_cast<{desc.prefix}{self.wrapper_name}{desc.suffix}>"
            f"({src});"
        )


class ArrayConverter(Converter):
    def to_native_arg(self, desc: TypeDescriptor, src: str) -> str:
        raise TypeError(
            f"array of {self.native_name} cannot be passed as a call argument"
        )

    def to_native(self, desc: TypeDescriptor, src: str, dst: str) -> str:
        return (
            f"std::memcpy({dst}, {src}, "
            f"{desc.element_count} * sizeof({self.native_name}));"
        )

    def from_native(self, desc: TypeDescriptor, src: str) -> str:
        return f"return reinterpret_cast<const {self.wrapper_name}*>({src});"


def select_converter(
    desc: TypeDescriptor,
    converters: Mapping[str, Converter],
    wrapper_name: str,
    is_member: bool = True,
) -> Converter:
    """Pick the converter for one member or parameter. First match wins."""
    if is_member and desc.is_array:
        return ArrayConverter(wrapper_name, desc.type_name)
    return converters.get(desc.type_name, PASS_THROUGH)


# ===--- Data model ---=== #


@dataclass(frozen=True)
class Guard:
    begin: str = ""
    end: str = ""

    @classmethod
    def for_macro(cls, macro: str) -> "Guard":
        return cls(f"#ifdef {macro}", "#endif")


NO_GUARD = Guard()


@dataclass(frozen=True)
class Handle:
    name: str
    native_name: str
    type_safe: bool
    guard: Guard = NO_GUARD


@dataclass(frozen=True)
class EnumValue:
    name: str
    native_name: str
    guard: Guard = NO_GUARD


@dataclass(frozen=True)
class Enum:
    name: str
    native_name: str
    values: tuple[EnumValue, ...] = ()
    used_by_bit_flag_set: bool = False
    underlying: str = ""
    guard: Guard = NO_GUARD


@dataclass(frozen=True)
class BitFlagSet:
    name: str
    native_name: str
    enum: Enum
    mask_type: str = "VkFlags"
    guard: Guard = NO_GUARD


@dataclass(frozen=True)
class Member:
    name: str
    type: str
    native_type: str
    descriptor: TypeDescriptor
    converter: Converter = PASS_THROUGH
    bitwidth: int | None = None

    @property
    def embeds_by_value(self) -> bool:
        return self.descriptor.is_array or not self.descriptor.is_pointer

    @property
    def accessor_type(self) -> str:
        if self.descriptor.is_pointer and not self.type.startswith("const "):
            return "const " + self.type
        return self.type


@dataclass(frozen=True)
class AggregateRecord:
    name: str
    native_name: str
    members: tuple[Member, ...] = ()
    is_union: bool = False
    has_discriminator_tag: bool = False
    discriminator_value: str = ""
    is_read_only: bool = False
    guard: Guard = NO_GUARD

    def value_dependencies(self) -> frozenset[str]:
        return frozenset(
            m.descriptor.type_name for m in self.members if m.embeds_by_value
        )


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str
    native_type: str
    descriptor: TypeDescriptor
    converter: Converter = PASS_THROUGH


@dataclass(frozen=True)
class Command:
    name: str
    native_name: str
    return_type: str
    native_return_type: str
    parameters: tuple[Parameter, ...] = ()
    guard: Guard = NO_GUARD
    return_descriptor: TypeDescriptor = field(
        default_factory=lambda: TypeDescriptor("void", is_blank=True)
    )

    @property
    def returns_result(self) -> bool:
        return self.native_return_type == RESULT_ENUM


@dataclass(frozen=True)
class TypeAlias:
    name: str
    target: str
    guard: Guard = NO_GUARD


@dataclass(frozen=True)
class Model:
    handles: tuple[Handle, ...] = ()
    enums: tuple[Enum, ...] = ()
    bit_flag_sets: tuple[BitFlagSet, ...] = ()
    records: tuple[AggregateRecord, ...] = ()
    commands: tuple[Command, ...] = ()
    base_type_aliases: tuple[TypeAlias, ...] = ()
    handle_aliases: tuple[TypeAlias, ...] = ()
    enum_aliases: tuple[TypeAlias, ...] = ()
    record_aliases: tuple[TypeAlias, ...] = ()


# ===--- Registry reading ---=== #


def _is_vulkan_api(el: ET.Element) -> bool:
    api = el.get("api")
    return not api or "vulkan" in api.split(",")


def _is_supported_extension(ext: ET.Element) -> bool:
    return "vulkan" in ext.get("supported", "vulkan").split(",")


def _type_name(t: ET.Element) -> str:
    name = t.get("name")
    if name:
        return name
    name_el = t.find("name")
    if name_el is not None and name_el.text:
        return name_el.text
    return ""


def _child_text(el: ET.Element, tag: str) -> str:
    child = el.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def load_api_constants(root: ET.Element) -> dict[str, int]:
    """Load VK_MAX_* etc integer constants from the API Constants block."""
    constants = {}
    for block in root.findall("enums"):
        if block.get("name") != "API Constants":
            continue
        for val in block.findall("enum"):
            name = val.get("name")
            value = val.get("value")
            alias = val.get("alias")
            if name and value:
                try:
                    constants[name] = int(value)
                except ValueError:
                    pass
            elif name and alias and alias in constants:
                constants[name] = constants[alias]
    return constants


def load_platform_protects(root: ET.Element) -> dict[str, str]:
    """Map platform names (win32, xlib, ...) to their protect macros."""
    return {
        p.get("name", ""): p.get("protect", "")
        for p in root.findall("platforms/platform")
        if p.get("name") and p.get("protect")
    }


def extension_guard(ext: ET.Element, platforms: Mapping[str, str]) -> Guard:
    macro = ext.get("protect") or platforms.get(ext.get("platform", ""), "")
    if not macro:
        return NO_GUARD
    return Guard.for_macro(macro)


def _core_names(root: ET.Element) -> set[str]:
    names = set()
    for feature in root.findall("feature"):
        if not _is_vulkan_api(feature):
            continue
        for req in feature.findall("require"):
            for el in req.findall("type") + req.findall("command"):
                if el.get("name"):
                    names.add(el.get("name"))
    return names


def collect_guards(root: ET.Element, platforms: Mapping[str, str]) -> dict[str, Guard]:
    """Guard each type and command with the extension that requires it."""
    core = _core_names(root)
    guards = {}
    for ext in root.findall("extensions/extension"):
        if not _is_supported_extension(ext):
            continue
        guard = extension_guard(ext, platforms)
        if guard == NO_GUARD:
            continue
        for req in ext.findall("require"):
            for el in req.findall("type") + req.findall("command"):
                name = el.get("name")
                if name and name not in core:
                    guards[name] = guard
    return guards


def resolve_array_length(text: str, api_constants: Mapping[str, int]) -> str:
    text = text.strip()
    if text.isdigit():
        return text
    if text in api_constants:
        return str(api_constants[text])
    raise UnknownConstantError(f"Unknown array size constant: {text}")


def element_suffix(el: ET.Element, api_constants: Mapping[str, int]) -> str:
    """Collect the character data around <type> and <name> of a declaration.

    ``<member>const <type>char</type>* <name>p</name></member>`` gives
    ``const * ``. Array lengths spelled as ``<enum>`` children are replaced
    by their numeric value; ``<comment>`` text is dropped.
    """
    parts = [el.text or ""]
    for child in el:
        if child.tag == "enum":
            parts.append(resolve_array_length(child.text or "", api_constants))
        parts.append(child.tail or "")
    extra = "".join(parts).strip()
    if extra.startswith("struct "):
        extra = extra.removeprefix("struct ").lstrip()
    return extra


def _collect_extending_value(
    val: ET.Element,
    guard: Guard,
    values: dict[str, list[tuple[str, Guard]]],
    seen: dict[str, set[str]],
) -> None:
    name = val.get("name")
    extends = val.get("extends")
    if not name or not extends or val.get("alias") or not _is_vulkan_api(val):
        return
    if name in seen[extends]:
        return
    if not any(val.get(attr) is not None for attr in ("value", "bitpos", "offset")):
        return
    values[extends].append((name, guard))
    seen[extends].add(name)


def collect_enum_values(
    root: ET.Element, platforms: Mapping[str, str]
) -> dict[str, list[tuple[str, Guard]]]:
    """Native value names per enumeration, in registry order.

    Values come from the <enums> blocks first, then from features and
    supported extensions that extend an enumeration. Aliases are skipped.
    """
    values: dict[str, list[tuple[str, Guard]]] = defaultdict(list)
    seen: dict[str, set[str]] = defaultdict(set)

    for block in root.findall("enums"):
        block_name = block.get("name", "")
        if block.get("type") not in ("enum", "bitmask"):
            continue
        for val in block.findall("enum"):
            name = val.get("name")
            if not name or val.get("alias") or not _is_vulkan_api(val):
                continue
            if val.get("value") is None and val.get("bitpos") is None:
                continue
            if name not in seen[block_name]:
                values[block_name].append((name, NO_GUARD))
                seen[block_name].add(name)

    for feature in root.findall("feature"):
        if not _is_vulkan_api(feature):
            continue
        for req in feature.findall("require"):
            for val in req.findall("enum"):
                _collect_extending_value(val, NO_GUARD, values, seen)

    for ext in root.findall("extensions/extension"):
        if not _is_supported_extension(ext):
            continue
        guard = extension_guard(ext, platforms)
        for req in ext.findall("require"):
            if not _is_vulkan_api(req):
                continue
            for val in req.findall("enum"):
                _collect_extending_value(val, guard, values, seen)

    return dict(values)


# ===--- Model building ---=== #


def build_enum(
    native_name: str,
    expand: str,
    native_values: Sequence[tuple[str, Guard]],
    guard: Guard = NO_GUARD,
) -> Enum:
    values = []
    taken = set()
    for value_name, value_guard in native_values:
        name = convert_enum_value_name(expand, native_name, value_name)
        if name in taken:
            log(f"Warning: {value_name} duplicates {native_name}::{name}; skipped")
            continue
        taken.add(name)
        values.append(EnumValue(name, value_name, value_guard))
    return Enum(
        name=strip_vk_prefix(native_name),
        native_name=native_name,
        values=tuple(values),
        guard=guard,
    )


def build_enum_map(
    root: ET.Element,
    enum_values: Mapping[str, Sequence[tuple[str, Guard]]],
    guards: Mapping[str, Guard],
) -> dict[str, Enum]:
    enum_map = {}
    for block in root.findall("enums"):
        name = block.get("name", "")
        if not name or block.get("type") not in ("enum", "bitmask"):
            continue
        enum_map[name] = build_enum(
            name,
            block.get("expand", ""),
            enum_values.get(name, ()),
            guards.get(name, NO_GUARD),
        )
    return enum_map


def extract_bit_flag_sets(
    root: ET.Element,
    enum_map: dict[str, Enum],
    guards: Mapping[str, Guard],
) -> list[BitFlagSet]:
    """First bit-flag pass: pair each mask with its backing enumeration.

    Every backing enumeration found (or synthesized) here is marked as owned
    by its bit-flag set and loses its own guard. ``enum_map`` is updated in
    place so the later enumeration pass can skip owned entries.
    """
    flag_sets = []
    for t in root.findall("types/type[@category='bitmask']"):
        if t.get("alias") or not _is_vulkan_api(t):
            continue
        name = _child_text(t, "name")
        storage = _child_text(t, "type")
        if not name:
            continue
        if storage not in FLAG_STORAGE_TYPES:
            log(f"Warning: unrecognized bitmask type {storage!r} for {name}; skipped")
            continue

        enum_name = (
            t.get("requires") or t.get("bitvalues") or bit_flag_set_to_enum_name(name)
        )
        enum = enum_map.get(enum_name)
        if enum is None:
            log(f"Warning: {name} has no backing enumeration {enum_name}; synthesized")
            enum = Enum(strip_vk_prefix(enum_name), enum_name)
        enum = replace(
            enum, used_by_bit_flag_set=True, underlying=storage, guard=NO_GUARD
        )
        enum_map[enum_name] = enum

        flag_sets.append(
            BitFlagSet(
                name=strip_vk_prefix(name),
                native_name=name,
                enum=enum,
                mask_type=storage,
                guard=guards.get(name, NO_GUARD),
            )
        )
    return flag_sets


def extract_handle(t: ET.Element, guards: Mapping[str, Guard]) -> Handle | None:
    name = _child_text(t, "name")
    if not name:
        return None
    return Handle(
        name=strip_vk_prefix(name),
        native_name=name,
        type_safe=_child_text(t, "type") == "VK_DEFINE_HANDLE",
        guard=guards.get(name, NO_GUARD),
    )


def parse_declaration(
    el: ET.Element, api_constants: Mapping[str, int]
) -> tuple[str, str, str, int | None]:
    """Return (name, type name, suffix, bit-field width) of a member or param."""
    name = _child_text(el, "name")
    type_name = _child_text(el, "type")
    extra, bitwidth = split_bitfield(element_suffix(el, api_constants))
    name, extra = fix_name_array_suffix(name, extra)
    return name, type_name, extra, bitwidth


def extract_record(
    t: ET.Element,
    guards: Mapping[str, Guard],
    api_constants: Mapping[str, int],
    structure_types: Collection[str],
) -> AggregateRecord:
    """Build one struct or union.

    The discriminator comes from the sType member's ``values`` attribute, or
    from the record name when that constant is a known VkStructureType value.
    Records such as VkBaseOutStructure have neither and keep sType zeroed.
    """
    native_name = t.get("name", "")
    name = strip_vk_prefix(native_name)
    members = []
    discriminator = ""
    for m in t.findall("member"):
        if not _is_vulkan_api(m):
            continue
        member_name, type_name, extra, bitwidth = parse_declaration(m, api_constants)
        if not member_name or not type_name:
            continue
        if member_name == "sType":
            discriminator = (m.get("values") or "").split(",")[0]
            if not discriminator and struct_type_constant(name) in structure_types:
                discriminator = struct_type_constant(name)
        members.append(
            Member(
                name=member_name,
                type=assemble_type(type_name, extra),
                native_type=assemble_type(type_name, extra),
                descriptor=analyze_type(type_name, extra),
                bitwidth=bitwidth,
            )
        )
    return AggregateRecord(
        name=name,
        native_name=native_name,
        members=tuple(members),
        is_union=t.get("category") == "union",
        has_discriminator_tag=bool(discriminator),
        discriminator_value=discriminator,
        is_read_only=t.get("returnedonly") == "true",
        guard=guards.get(native_name, NO_GUARD),
    )


def extract_command(
    cmd: ET.Element,
    guards: Mapping[str, Guard],
    api_constants: Mapping[str, int],
) -> Command | None:
    proto = cmd.find("proto")
    if proto is None:
        return None
    native_name = _child_text(proto, "name")
    return_type = _child_text(proto, "type") or "void"
    return_extra = element_suffix(proto, api_constants)
    params = []
    for p in cmd.findall("param"):
        if not _is_vulkan_api(p):
            continue
        name, type_name, extra, _ = parse_declaration(p, api_constants)
        params.append(
            Parameter(
                name=name,
                type=assemble_type(type_name, extra),
                native_type=assemble_type(type_name, extra),
                descriptor=analyze_type(type_name, extra),
            )
        )
    return Command(
        name=convert_command_name(native_name),
        native_name=native_name,
        return_type=assemble_type(return_type, return_extra),
        native_return_type=assemble_type(return_type, return_extra),
        parameters=tuple(params),
        guard=guards.get(native_name, NO_GUARD),
        return_descriptor=analyze_type(return_type, return_extra),
    )


def extract_base_type_aliases(root: ET.Element) -> list[TypeAlias]:
    aliases = []
    for t in root.findall("types/type[@category='basetype']"):
        name = _child_text(t, "name")
        if not name.startswith("Vk") or name in PRELUDE_BASE_TYPES:
            continue
        if name in FLAG_STORAGE_TYPES:
            continue
        aliases.append(TypeAlias(strip_vk_prefix(name), name))
    return aliases


def _wrapper_type(
    desc: TypeDescriptor, wrapper_names: Mapping[str, str]
) -> str:
    return assemble_type(wrapper_names.get(desc.type_name, desc.type_name), desc.extra)


def resolve_records(
    records: Sequence[AggregateRecord],
    converters: Mapping[str, Converter],
    wrapper_names: Mapping[str, str],
) -> list[AggregateRecord]:
    """Bind a converter and a wrapper type spelling to every member."""
    resolved = []
    for record in records:
        members = []
        for m in record.members:
            wrapper = wrapper_names.get(m.descriptor.type_name, m.descriptor.type_name)
            members.append(
                replace(
                    m,
                    type=_wrapper_type(m.descriptor, wrapper_names),
                    converter=select_converter(m.descriptor, converters, wrapper),
                )
            )
        resolved.append(replace(record, members=tuple(members)))
    return resolved


def resolve_commands(
    commands: Sequence[Command],
    converters: Mapping[str, Converter],
    wrapper_names: Mapping[str, str],
) -> list[Command]:
    resolved = []
    for cmd in commands:
        params = tuple(
            replace(
                p,
                type=_wrapper_type(p.descriptor, wrapper_names),
                converter=select_converter(
                    p.descriptor, converters, "", is_member=False
                ),
            )
            for p in cmd.parameters
        )
        resolved.append(
            replace(
                cmd,
                return_type=_wrapper_type(cmd.return_descriptor, wrapper_names),
                parameters=params,
            )
        )
    return resolved


def build_model(root: ET.Element) -> Model:
    """Walk the registry and produce the complete, ordered entity graph.

    Passes, in order: enumerations, bit-flag sets (which claim their backing
    enumerations), handles/enumerations/records in registry order, aliases,
    commands, converter resolution, record ordering.

    Args:
        root: Parsed <registry> element.

    Returns:
        Immutable Model ready for rendering.

    Raises:
        UnknownConstantError: An array length names an unknown constant.
        TypeDescriptorError: A member or parameter has a malformed suffix.
        DependencyCycleError: Records embed each other by value.
    """
    api_constants = load_api_constants(root)
    platforms = load_platform_protects(root)
    guards = collect_guards(root, platforms)
    enum_values = collect_enum_values(root, platforms)
    structure_types = {name for name, _ in enum_values.get("VkStructureType", ())}

    # Build-scoped lookup tables: native name -> converter / wrapper spelling.
    converters: dict[str, Converter] = {}
    wrapper_names: dict[str, str] = {
        name: strip_vk_prefix(name) for name in PRELUDE_BASE_TYPES
    }

    enum_map = build_enum_map(root, enum_values, guards)
    for native_name, enum in enum_map.items():
        converters[native_name] = ValueCastConverter(enum.name, native_name)
        wrapper_names[native_name] = enum.name

    # Separate pass on bit-flag sets, so that we know which enums they own
    # before any enumeration is emitted.
    bit_flag_sets = extract_bit_flag_sets(root, enum_map, guards)
    for flags in bit_flag_sets:
        converters[flags.native_name] = BitFlagConverter(flags.name, flags.native_name)
        wrapper_names[flags.native_name] = flags.name
        wrapper_names[flags.enum.native_name] = flags.enum.name
        converters.setdefault(
            flags.enum.native_name,
            ValueCastConverter(flags.enum.name, flags.enum.native_name),
        )

    handles: list[Handle] = []
    enums: list[Enum] = []
    records: list[AggregateRecord] = []
    raw_aliases: list[tuple[str, str, str]] = []

    for t in root.findall("types/type"):
        category = t.get("category", "")
        if not _is_vulkan_api(t):
            continue
        if t.get("alias"):
            raw_aliases.append((category, _type_name(t), t.get("alias", "")))
            continue
        if category == "handle":
            handle = extract_handle(t, guards)
            if handle is None:
                continue
            handles.append(handle)
            converters[handle.native_name] = HandleConverter(
                handle.name, handle.native_name
            )
            wrapper_names[handle.native_name] = handle.name
        elif category == "enum":
            name = t.get("name", "")
            enum = enum_map.get(name)
            if enum is None:
                log(f"Warning: enumeration {name} has no values block; synthesized")
                enum = Enum(
                    strip_vk_prefix(name), name, guard=guards.get(name, NO_GUARD)
                )
                enum_map[name] = enum
                converters[name] = ValueCastConverter(enum.name, name)
                wrapper_names[name] = enum.name
            if enum.used_by_bit_flag_set:
                continue
            enums.append(enum)
        elif category in ("struct", "union"):
            name = t.get("name", "")
            if name in EXCLUDED_RECORD_NAMES:
                continue
            record = extract_record(t, guards, api_constants, structure_types)
            records.append(record)
            converters[name] = ReinterpretConverter(record.name, name)
            wrapper_names[name] = record.name

    base_type_aliases = extract_base_type_aliases(root)
    for alias in base_type_aliases:
        wrapper_names[alias.target] = alias.name

    handle_aliases: list[TypeAlias] = []
    enum_aliases: list[TypeAlias] = []
    record_aliases: list[TypeAlias] = []
    record_alias_targets: dict[str, str] = {}
    buckets = {
        "handle": handle_aliases,
        "enum": enum_aliases,
        "bitmask": enum_aliases,
        "struct": record_aliases,
        "union": record_aliases,
    }
    for category, name, target in raw_aliases:
        bucket = buckets.get(category)
        if bucket is None or target not in converters or name in converters:
            continue
        converters[name] = converters[target]
        wrapper_names[name] = wrapper_names[target]
        if category in ("struct", "union"):
            record_alias_targets[name] = target
        bucket.append(
            TypeAlias(
                strip_vk_prefix(name),
                wrapper_names[target],
                guards.get(name, NO_GUARD),
            )
        )

    commands: list[Command] = []
    command_map: dict[str, Command] = {}
    command_aliases: list[tuple[str, str]] = []
    for cmd in root.findall("commands/command"):
        if not _is_vulkan_api(cmd):
            continue
        if cmd.get("alias"):
            command_aliases.append((cmd.get("name", ""), cmd.get("alias", "")))
            continue
        command = extract_command(cmd, guards, api_constants)
        if command is None:
            continue
        commands.append(command)
        command_map[command.native_name] = command
    for alias, target in command_aliases:
        target_cmd = command_map.get(target)
        if target_cmd is None:
            log(f"Warning: command alias {alias} targets unknown {target}; skipped")
            continue
        commands.append(
            replace(
                target_cmd,
                name=convert_command_name(alias),
                native_name=alias,
                guard=guards.get(alias, NO_GUARD),
            )
        )

    records = resolve_records(records, converters, wrapper_names)
    commands = resolve_commands(commands, converters, wrapper_names)
    sorted_records = sort_records_by_dependencies(records, record_alias_targets)

    return Model(
        handles=tuple(handles),
        enums=tuple(enums),
        bit_flag_sets=tuple(bit_flag_sets),
        records=sorted_records,
        commands=tuple(commands),
        base_type_aliases=tuple(base_type_aliases),
        handle_aliases=tuple(handle_aliases),
        enum_aliases=tuple(enum_aliases),
        record_aliases=tuple(record_aliases),
    )


# ===--- Dependency ordering ---=== #


def sort_records_by_dependencies(
    records: Sequence[AggregateRecord],
    aliases: Mapping[str, str] | None = None,
) -> tuple[AggregateRecord, ...]:
    """Order records so that each one follows every record it embeds by value.

    Records become ready once none of their by-value dependencies remain
    unsorted; the records made ready by one scan are ordered by native name.
    Pointer members are not dependencies.

    Args:
        records: Records in any order. Native names must be unique.
        aliases: Alias native name -> aliased record's native name.

    Returns:
        The same records, dependencies first. Identical for any input order.

    Raises:
        DependencyCycleError: If a scan makes no progress.
    """
    aliases = aliases or {}
    remaining: dict[str, AggregateRecord] = {}
    for record in records:
        if record.native_name in remaining:
            raise ValueError(f"duplicate record {record.native_name}")
        remaining[record.native_name] = record

    deps = {
        record.native_name: frozenset(
            aliases.get(name, name) for name in record.value_dependencies()
        )
        for record in records
    }

    ordered: list[AggregateRecord] = []
    while remaining:
        ready = [
            record
            for name, record in remaining.items()
            if not deps[name] & remaining.keys()
        ]
        if not ready:
            raise DependencyCycleError(sorted(remaining))
        ready.sort(key=lambda r: r.native_name)
        for record in ready:
            del remaining[record.native_name]
        ordered.extend(ready)
    return tuple(ordered)


# ===--- Rendering ---=== #

_GUARD_BEGIN = """\
{% if {obj}.guard.begin %}
{{ {obj}.guard.begin }}
{% endif %}
"""

_GUARD_END = """\
{% if {obj}.guard.end %}
{{ {obj}.guard.end }}
{% endif %}
"""


def _guarded(obj: str, body: str) -> str:
    return (
        _GUARD_BEGIN.replace("{obj}", obj)
        + body
        + _GUARD_END.replace("{obj}", obj)
    )


_PRELUDE = """\
{{ header.guard_begin }}

#include <cstdint>
#include <cstddef>
#include <cstring>
#include <vulkan/vulkan.h>

namespace {{ header.namespace }} {

template <typename EnumType, typename T = uint32_t>
class Flags {
    T m_mask;

public:
    Flags(): m_mask(0) {}
    Flags(EnumType bit): m_mask(static_cast<T>(bit)) {}
    explicit Flags(T mask): m_mask(mask) {}
    Flags(const Flags &rhs): m_mask(rhs.m_mask) {}

    Flags &operator=(const Flags &rhs) { m_mask = rhs.m_mask; return *this; }

    Flags &operator|=(const Flags &rhs) { m_mask |= rhs.m_mask; return *this; }
    Flags &operator&=(const Flags &rhs) { m_mask &= rhs.m_mask; return *this; }
    Flags &operator^=(const Flags &rhs) { m_mask ^= rhs.m_mask; return *this; }

    Flags operator|(const Flags &rhs) const { return Flags(m_mask | rhs.m_mask); }
    Flags operator&(const Flags &rhs) const { return Flags(m_mask & rhs.m_mask); }
    Flags operator^(const Flags &rhs) const { return Flags(m_mask ^ rhs.m_mask); }

    Flags operator~() const { return Flags(~m_mask); }

    bool operator==(const Flags &rhs) const { return m_mask == rhs.m_mask; }
    bool operator!=(const Flags &rhs) const { return m_mask != rhs.m_mask; }

    operator bool() const { return m_mask != 0; }
    explicit operator T() const { return m_mask; }
};

template <typename EnumType, typename T>
inline Flags<EnumType, T> operator|(EnumType bit, const Flags<EnumType, T> &flags)
{
    return flags | bit;
}
template <typename EnumType, typename T>
inline Flags<EnumType, T> operator&(EnumType bit, const Flags<EnumType, T> &flags)
{
    return flags & bit;
}
template <typename EnumType, typename T>
inline Flags<EnumType, T> operator^(EnumType bit, const Flags<EnumType, T> &flags)
{
    return flags ^ bit;
}

typedef uint32_t SampleMask;
typedef uint32_t Bool32;
typedef uint64_t DeviceSize;

#if defined(__LP64__) || defined(_WIN64) || defined(__x86_64__) || defined(_M_X64) || defined(__ia64) || defined (_M_IA64) || defined(__aarch64__) || defined(__powerpc64__)
#define VK_EXPLICIT_HANDLE
#else
#define VK_EXPLICIT_HANDLE explicit
#endif

struct NullHandle {};
constexpr NullHandle nullHandle = {};

{% for alias in model.base_type_aliases %}
using {{ alias.name }} = {{ alias.target }};
{% endfor %}
"""

_ENUM_MACRO = (
    """\
{% macro render_enum(enum) %}
enum class {{ enum.name }}{% if enum.underlying %} : {{ enum.underlying }}{% endif %} {
{% for value in enum.values %}
"""
    + _guarded("value", "    {{ value.name }} = {{ value.native_name }},\n")
    + """\
{% endfor %}
};

inline const char *getEnumString({{ enum.name }} e)
{
    switch (e) {
{% for value in enum.values %}
"""
    + _guarded(
        "value",
        '    case {{ enum.name }}::{{ value.name }}: return "{{ enum.name }}::{{ value.name }}";\n',
    )
    + """\
{% endfor %}
    default: return "<invalid enum>";
    }
}
{% endmacro %}
"""
)

_HANDLES = (
    """\
{% for handle in model.handles %}

"""
    + _guarded(
        "handle",
        """\
class {{ handle.name }} {
    {{ handle.native_name }} m_handle;
public:
    {{ handle.name }}(): m_handle(VK_NULL_HANDLE) {}
    {{ handle.name }}(NullHandle): m_handle(VK_NULL_HANDLE) {}
    {{ "" if handle.type_safe else "VK_EXPLICIT_HANDLE " }}{{ handle.name }}({{ handle.native_name }} handle): m_handle(handle) {}
    {{ "" if handle.type_safe else "VK_EXPLICIT_HANDLE " }}operator {{ handle.native_name }}() const { return m_handle; }

    {{ handle.native_name }} handle() const { return m_handle; }
    {{ handle.native_name }} *c_ptr() { return &m_handle; }
    const {{ handle.native_name }} *c_ptr() const { return &m_handle; }
};

inline bool operator==(const {{ handle.name }} &lhs, NullHandle) { return lhs.handle() == VK_NULL_HANDLE; }
inline bool operator==(NullHandle, const {{ handle.name }} &rhs) { return rhs.handle() == VK_NULL_HANDLE; }
inline bool operator!=(const {{ handle.name }} &lhs, NullHandle) { return lhs.handle() != VK_NULL_HANDLE; }
inline bool operator!=(NullHandle, const {{ handle.name }} &rhs) { return rhs.handle() != VK_NULL_HANDLE; }
""",
    )
    + """\
{% endfor %}
{% for alias in model.handle_aliases %}
"""
    + _guarded("alias", "using {{ alias.name }} = {{ alias.target }};\n")
    + """\
{% endfor %}
"""
)

_ENUMS = (
    """\
{% for enum in model.enums %}

"""
    + _guarded("enum", "{{ render_enum(enum) }}")
    + """\
{% endfor %}
"""
)

_BIT_FLAG_SETS = (
    """\
{% for flags in model.bit_flag_sets %}

"""
    + _guarded(
        "flags",
        """\
{{ render_enum(flags.enum) }}
using {{ flags.name }} = Flags<{{ flags.enum.name }}, {{ flags.native_name }}>;

inline {{ flags.name }} operator|({{ flags.enum.name }} bit0, {{ flags.enum.name }} bit1)
{
    return {{ flags.name }}(bit0) | bit1;
}
""",
    )
    + """\
{% endfor %}
{% for alias in model.enum_aliases %}
"""
    + _guarded("alias", "using {{ alias.name }} = {{ alias.target }};\n")
    + """\
{% endfor %}
"""
)

_RECORDS = (
    """\

{% for record in model.records %}
"""
    + _guarded("record", "class {{ record.name }};\n")
    + """\
{% endfor %}
{% for record in model.records %}

"""
    + _guarded(
        "record",
        """\
class {{ record.name }} {
    {{ record.native_name }} m_struct;
public:
    {{ record.name }}()
    {
        std::memset(&m_struct, 0, sizeof({{ record.native_name }}));
{% if record.has_discriminator_tag %}
        m_struct.sType = {{ record.discriminator_value }};
{% endif %}
    }
    {{ record.name }}(const {{ record.native_name }} &r): m_struct(r) {}
{% for m in record.members %}

    {{ m.accessor_type }} {{ m.name }}() const
    {
        {{ m.converter.from_native(m.descriptor, "m_struct." ~ m.name) }}
    }
{% if not record.is_read_only %}
    {{ record.name }} &{{ m.name }}({{ m.type }} {{ m.name }})
    {
        {{ m.converter.to_native(m.descriptor, m.name, "m_struct." ~ m.name) }}
        return *this;
    }
{% endif %}
{% endfor %}

    {{ record.native_name }} *c_ptr() { return &m_struct; }
    const {{ record.native_name }} *c_ptr() const { return &m_struct; }

    operator const {{ record.native_name }}&() const { return m_struct; }
};
""",
    )
    + """\
{% endfor %}
{% for alias in model.record_aliases %}
"""
    + _guarded("alias", "using {{ alias.name }} = {{ alias.target }};\n")
    + """\
{% endfor %}
"""
)

_COMMANDS = (
    """\
{% for command in model.commands %}

"""
    + _guarded(
        "command",
        """\
inline {{ command.return_type }} {{ command.name }}(
{%- for p in command.parameters %}{{ ", " if not loop.first else "" }}{{ p.type }} {{ p.name }}{% endfor -%}
)
{
    {{ "return " if command.return_type != "void" else "" }}{{ "Result(" if command.returns_result else "" }}{{ command.native_name }}(
{%- for p in command.parameters %}{{ ", " if not loop.first else "" }}{{ p.converter.to_native_arg(p.descriptor, p.name) }}{% endfor -%}
){{ ")" if command.returns_result else "" }};
}
""",
    )
    + """\
{% endfor %}
"""
)

_FOOTER = """\

} // namespace {{ header.namespace }}
{{ header.guard_end }}
"""

TEMPLATES: dict[str, str] = {
    "vulkan.hpp": (
        _ENUM_MACRO
        + _PRELUDE
        + _HANDLES
        + _ENUMS
        + _BIT_FLAG_SETS
        + _RECORDS
        + _COMMANDS
        + _FOOTER
    ),
}
DEFAULT_TEMPLATE = "vulkan.hpp"


def build_environment(templates: Mapping[str, str] | None = None) -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.DictLoader(dict(TEMPLATES if templates is None else templates)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
    )


def render_header(
    model: Model,
    header: HeaderParams | None = None,
    env: jinja2.Environment | None = None,
    template_name: str = DEFAULT_TEMPLATE,
) -> str:
    """Render the complete header for a model.

    Args:
        model: Sorted, converter-resolved entity graph from build_model.
        header: Include guard and namespace parameters.
        env: Environment holding the templates. Defaults to TEMPLATES.
        template_name: Entry template within env.

    Returns:
        Header text with exactly one trailing newline after the footer.
    """
    env = env or build_environment()
    template = env.get_template(template_name)
    return template.render(model=model, header=header or HeaderParams())


# ===--- Output ---=== #


def write_output(text: str, output_path: Path | None) -> None:
    """Write the header to stdout, or atomically replace ``output_path``.

    The text goes to a temporary file next to the destination first, so a
    failed write never leaves a truncated header behind.
    """
    if output_path is None:
        sys.stdout.write(text)
        return

    directory = output_path.parent
    directory.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=directory, prefix=f".{output_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, output_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Per-category entity counts and the destination of one run."""

    handles: int
    enums: int
    bit_flag_sets: int
    records: int
    commands: int
    aliases: int
    destination: str
    line_count: int


def build_generation_summary(
    model: Model, text: str, output_path: Path | None
) -> GenerationSummary:
    return GenerationSummary(
        handles=len(model.handles),
        enums=len(model.enums),
        bit_flag_sets=len(model.bit_flag_sets),
        records=len(model.records),
        commands=len(model.commands),
        aliases=(
            len(model.handle_aliases)
            + len(model.enum_aliases)
            + len(model.record_aliases)
        ),
        destination="<stdout>" if output_path is None else str(output_path),
        line_count=text.count("\n"),
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    lines = [
        "Vulkan C++ bindings generated:",
        "",
        f"  Handles:        {summary.handles:>6}",
        f"  Enums:          {summary.enums:>6}",
        f"  Bit-flag sets:  {summary.bit_flag_sets:>6}",
        f"  Records:        {summary.records:>6}",
        f"  Commands:       {summary.commands:>6}",
        f"  Aliases:        {summary.aliases:>6}",
        "",
        f"  Output: {summary.destination} ({summary.line_count:,} lines)",
        "",
    ]
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="", file=sys.stderr)


# ===--- Main generation ---=== #

_FATAL_ERRORS = (
    OSError,
    ET.ParseError,
    ValueError,
    TypeError,
    LookupError,
    AttributeError,
    RuntimeError,
    jinja2.TemplateError,
)


def _run_stage(stage: str, func, *args):
    try:
        return func(*args)
    except _FATAL_ERRORS as err:
        raise GenerationError(stage, err) from err


def parse_registry(spec_path: Path) -> ET.Element:
    return ET.parse(spec_path).getroot()


def run_generate(config: GenerateConfig) -> GenerationSummary:
    """Execute parse -> model -> render -> write for one registry."""
    log(f"Parsing: {config.spec_path}")
    root = _run_stage("parse", parse_registry, config.spec_path)

    model = _run_stage("model", build_model, root)
    log(
        f"  Model: {len(model.handles)} handles, {len(model.enums)} enums, "
        f"{len(model.bit_flag_sets)} bit-flag sets, {len(model.records)} records, "
        f"{len(model.commands)} commands"
    )

    text = _run_stage("render", render_header, model, config.header)
    _run_stage("write", write_output, text, config.output_path)

    return build_generation_summary(model, text, config.output_path)


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        log(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            log(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        summary = run_generate(config)
    except GenerationError as err:
        log(f"Error in {err.stage} stage: {err.cause}")
        raise SystemExit(1) from err

    print_generation_summary(summary)


if __name__ == "__main__":
    main()
