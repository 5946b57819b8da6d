import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import vkcpp_gen  # noqa: E402

SAMPLE_REGISTRY = """\
<registry>
  <platforms>
    <platform name="win32" protect="VK_USE_PLATFORM_WIN32_KHR"/>
  </platforms>
  <types>
    <type category="basetype">typedef <type>uint64_t</type> <name>VkDeviceAddress</name>;</type>
    <type category="basetype">typedef <type>uint32_t</type> <name>VkFlags</name>;</type>
    <type requires="VkSampleCountFlagBits" category="bitmask">typedef <type>VkFlags</type> <name>VkSampleCountFlags</name>;</type>
    <type category="handle" objtypeenum="VK_OBJECT_TYPE_DEVICE"><type>VK_DEFINE_HANDLE</type>(<name>VkDevice</name>)</type>
    <type category="handle" objtypeenum="VK_OBJECT_TYPE_IMAGE"><type>VK_DEFINE_NON_DISPATCHABLE_HANDLE</type>(<name>VkImage</name>)</type>
    <type category="enum" name="VkStructureType"/>
    <type category="enum" name="VkResult"/>
    <type category="enum" name="VkSampleCountFlagBits"/>
    <type category="struct" name="VkAttachmentInfo">
      <member values="VK_STRUCTURE_TYPE_ATTACHMENT_INFO"><type>VkStructureType</type> <name>sType</name></member>
      <member optional="true">const <type>void</type>* <name>pNext</name></member>
      <member><type>VkExtent2D</type> <name>extent</name></member>
      <member><type>VkSampleCountFlags</type> <name>samples</name></member>
      <member><type>VkImage</type> <name>image</name></member>
      <member><type>char</type> <name>label</name>[<enum>VK_MAX_LABEL_SIZE</enum>]</member>
    </type>
    <type category="struct" name="VkExtent2D">
      <member><type>uint32_t</type> <name>width</name></member>
      <member><type>uint32_t</type> <name>height</name></member>
    </type>
    <type category="struct" name="VkWin32Info">
      <member><type>uint32_t</type> <name>flags</name></member>
    </type>
    <type category="struct" name="VkAttachmentInfoKHR" alias="VkAttachmentInfo"/>
    <type category="struct" name="VkRect3D">
      <member><type>uint32_t</type> <name>depth</name></member>
    </type>
  </types>
  <enums name="API Constants">
    <enum type="uint32_t" value="8" name="VK_MAX_LABEL_SIZE"/>
  </enums>
  <enums name="VkStructureType" type="enum">
    <enum value="0" name="VK_STRUCTURE_TYPE_APPLICATION_INFO"/>
    <enum value="1" name="VK_STRUCTURE_TYPE_ATTACHMENT_INFO"/>
  </enums>
  <enums name="VkResult" type="enum">
    <enum value="0" name="VK_SUCCESS"/>
    <enum value="-1" name="VK_ERROR_OUT_OF_HOST_MEMORY"/>
  </enums>
  <enums name="VkSampleCountFlagBits" type="bitmask">
    <enum bitpos="0" name="VK_SAMPLE_COUNT_1_BIT"/>
    <enum bitpos="2" name="VK_SAMPLE_COUNT_4_BIT"/>
  </enums>
  <commands>
    <command>
      <proto><type>VkResult</type> <name>vkUseAttachment</name></proto>
      <param><type>VkDevice</type> <name>device</name></param>
      <param>const <type>VkAttachmentInfo</type>* <name>pInfo</name></param>
    </command>
    <command>
      <proto><type>void</type> <name>vkUseWin32</name></proto>
      <param><type>VkDevice</type> <name>device</name></param>
    </command>
    <command name="vkUseAttachmentKHR" alias="vkUseAttachment"/>
  </commands>
  <feature api="vulkan" name="VK_VERSION_1_0">
    <require>
      <type name="VkAttachmentInfo"/>
      <command name="vkUseAttachment"/>
    </require>
  </feature>
  <extensions>
    <extension name="VK_KHR_win32_thing" supported="vulkan" platform="win32">
      <require>
        <enum offset="0" extends="VkStructureType" name="VK_STRUCTURE_TYPE_WIN32_INFO_KHR"/>
        <type name="VkWin32Info"/>
        <command name="vkUseWin32"/>
      </require>
    </extension>
    <extension name="VK_EXT_disabled_thing" supported="disabled">
      <require>
        <enum offset="0" extends="VkStructureType" name="VK_STRUCTURE_TYPE_DISABLED_EXT"/>
      </require>
    </extension>
  </extensions>
</registry>
"""


@pytest.fixture
def make_registry_root() -> Callable[[str], ET.Element]:
    def _make_registry_root(inner_xml: str) -> ET.Element:
        return ET.fromstring(f"<registry>{inner_xml}</registry>")

    return _make_registry_root


@pytest.fixture
def sample_root() -> ET.Element:
    return ET.fromstring(SAMPLE_REGISTRY)


@pytest.fixture
def sample_model(sample_root: ET.Element) -> vkcpp_gen.Model:
    return vkcpp_gen.build_model(sample_root)


@pytest.fixture
def sample_spec(tmp_path: Path) -> Path:
    spec = tmp_path / "vk.xml"
    spec.write_text(SAMPLE_REGISTRY, encoding="utf-8")
    return spec
