"""
WiX XML 序列化

把 WixFragment 写为 .wxs 源文件。第一个 Fragment 包含目录、组件、组件组和属性，
第二个 Fragment 包含图标声明。

写入是原子的：先写临时文件再替换目标文件，失败时删除临时文件并抛出 SerializationError。
"""

import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from ..utils.logging import write_logger
from ..utils.paths import ensure_directory
from .build_context import BuildError
from .components import (
    Component,
    FilePayload,
    ProgIdPayload,
    RegistryKeyPath,
    RemoveFolderExPayload,
    ServiceConfigPayload,
    ShortcutPayload,
)
from .document import DirectoryBranch, WixFragment
from .identifiers import Role, identifier
from .toolset import WixToolsetType


class SerializationError(BuildError):
    """片段序列化失败，输出文件不可用"""
    pass


class FragmentWriter:
    """WiX 片段写入器"""

    def __init__(self, fragment: WixFragment):
        self.fragment = fragment
        self.toolset = fragment.toolset
        self._ns = self.toolset.namespace
        self._util_ns = self.toolset.util_namespace

    def _tag(self, name: str) -> str:
        return f"{{{self._ns}}}{name}"

    def _util_tag(self, name: str) -> str:
        return f"{{{self._util_ns}}}{name}"

    def _sub(self, parent: ET.Element, name: str, **attrs: Optional[str]) -> ET.Element:
        """添加子元素，值为 None 的属性不写出"""
        return ET.SubElement(parent, self._tag(name), {k: v for k, v in attrs.items() if v is not None})

    def build_tree(self) -> ET.ElementTree:
        ET.register_namespace('', self._ns)
        ET.register_namespace('util', self._util_ns)

        root = ET.Element(self._tag("Wix"))
        main = self._sub(root, "Fragment")

        for search in self.fragment.search_properties:
            prop = self._sub(main, "Property", Id=search.id)
            self._sub(prop, "RegistrySearch", Id=search.search_id, Root=search.root,
                      Key=search.key, Type=search.type, Name=search.name)

        for branch in self.fragment.branches:
            self._write_branch(main, branch)

        for declaration in self.fragment.directories:
            ref = self._sub(main, "DirectoryRef", Id=declaration.parent_id)
            self._sub(ref, "Directory", Id=declaration.id, Name=declaration.name)

        for component in self.fragment.components.values():
            ref = self._sub(main, "DirectoryRef", Id=identifier(component.directory, Role.FOLDER))
            self._write_component(ref, component)

        for group in self.fragment.groups:
            group_element = self._sub(main, "ComponentGroup", Id=group.id)
            for component_id in group:
                self._sub(group_element, "ComponentRef", Id=component_id)

        for prop in self.fragment.properties:
            self._sub(main, "Property", Id=prop.id, Value=prop.value)

        icons = self._sub(root, "Fragment")
        for icon in self.fragment.icons:
            self._sub(icons, "Icon", Id=icon.id, SourceFile=str(icon.source))

        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ")
        return tree

    def to_string(self) -> str:
        return ET.tostring(self.build_tree().getroot(), encoding="unicode")

    def write(self, output_path: Path) -> Path:
        """原子写入 output_path

        Raises:
            SerializationError: 写入或编码失败
        """
        output_path = Path(output_path)
        tmp_path = None
        try:
            tree = self.build_tree()
            ensure_directory(output_path.parent)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{output_path.name}.", suffix=".tmp", dir=str(output_path.parent)
            )
            os.close(fd)
            tmp_path = Path(tmp_name)
            tree.write(tmp_path, encoding="utf-8", xml_declaration=True)
            os.replace(tmp_path, output_path)
            tmp_path = None
            write_logger.debug(f"已写入 {output_path}")
        except (OSError, ValueError, TypeError, ET.ParseError) as e:
            raise SerializationError(f"写入 WiX 片段失败 [{output_path}]: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
        return output_path

    def _write_branch(self, parent: ET.Element, branch: DirectoryBranch) -> None:
        current = parent if branch.ref is None else self._sub(parent, "DirectoryRef", Id=branch.ref)
        for level in branch.levels:
            if level.standard:
                current = self._sub(current, "StandardDirectory", Id=level.id)
            else:
                current = self._sub(current, "Directory", Id=level.id, Name=level.name)

    def _write_component(self, parent: ET.Element, component: Component) -> None:
        wix3 = self.toolset.type == WixToolsetType.WIX3
        attrs = {"Id": component.id}
        if wix3:
            attrs["Guid"] = component.guid
            attrs["Win64"] = "yes" if self.fragment.win64 else "no"
        else:
            if component.guid != "*":
                attrs["Guid"] = component.guid
            attrs["Bitness"] = "always64" if self.fragment.win64 else "always32"

        payload = component.payload
        if isinstance(payload, ShortcutPayload) and not wix3:
            attrs["Condition"] = payload.condition

        # 文件以外的主元素没有 KeyPath 属性，由组件自身（所属目录）作为键路径
        if component.key_path and component.role is not Role.FILE:
            attrs["KeyPath"] = "yes"

        element = self._sub(parent, "Component", **attrs)

        if isinstance(payload, ShortcutPayload) and wix3:
            condition = self._sub(element, "Condition")
            condition.text = payload.condition

        if component.registry_key_path is not None:
            self._write_registry_key_path(element, component.registry_key_path)

        if component.remove_folder is not None:
            self._sub(element, "RemoveFolder", Id=component.remove_folder.id, On="uninstall")

        self._write_primary_element(element, component)

    def _write_registry_key_path(self, parent: ET.Element, key_path: RegistryKeyPath) -> None:
        key = self._sub(parent, "RegistryKey", Root=key_path.root, Key=key_path.key, Action=key_path.action)
        self._sub(key, "RegistryValue", Type="string", KeyPath="yes", Name=key_path.name, Value=key_path.value)

    def _write_primary_element(self, parent: ET.Element, component: Component) -> None:
        role = component.role
        payload = component.payload

        if role is Role.FILE and isinstance(payload, FilePayload):
            self._sub(parent, "File", Id=component.element_id,
                      KeyPath="yes" if component.key_path else None,
                      Source=str(payload.source), Name=payload.name)
            for service in payload.services:
                self._sub(parent, "ServiceInstall", Id=service.install_id, Name=service.name,
                          DisplayName=service.name, Description=service.description,
                          Type="ownProcess", Start="auto", ErrorControl="normal",
                          Arguments=service.arguments)
                self._sub(parent, "ServiceControl", Id=service.control_id, Name=service.name,
                          Start="install", Stop="both", Remove="uninstall", Wait="yes")

        elif role is Role.SHORTCUT and isinstance(payload, ShortcutPayload):
            self._sub(parent, "Shortcut", Id=component.element_id, Name=payload.name,
                      WorkingDirectory=payload.working_directory, Advertise="no",
                      Target=payload.target)

        elif role is Role.PROG_ID and isinstance(payload, ProgIdPayload):
            prog_id = self._sub(parent, "ProgId", Id=component.element_id,
                                Description=payload.description or None,
                                Icon=payload.icon,
                                IconIndex="0" if payload.icon else None)
            extension = self._sub(prog_id, "Extension", Id=payload.extension, Advertise="no",
                                  ContentType=payload.content_type)
            if payload.declare_mime:
                self._sub(extension, "MIME", ContentType=payload.content_type, Default="yes")
            self._sub(extension, "Verb", Id="open", Command="!(loc.ContextMenuCommandLabel)",
                      Argument='"%1" %*', TargetFile=payload.verb_target)

        elif role is Role.CREATE_FOLDER:
            self._sub(parent, "CreateFolder")

        elif role is Role.REMOVE_FOLDER:
            self._sub(parent, "RemoveFolder", Id=component.element_id, On="uninstall")

        elif isinstance(payload, ServiceConfigPayload):
            ET.SubElement(parent, self._util_tag("ServiceConfig"), {
                "ServiceName": payload.service_name,
                "FirstFailureActionType": payload.first_failure,
                "SecondFailureActionType": payload.second_failure,
                "ThirdFailureActionType": payload.third_failure,
                "RestartServiceDelayInSeconds": str(payload.restart_delay),
                "ResetPeriodInDays": str(payload.reset_period),
            })

        elif isinstance(payload, RemoveFolderExPayload):
            ET.SubElement(parent, self._util_tag("RemoveFolderEx"), {
                "On": "uninstall",
                "Property": payload.property_id,
            })


def write_fragment(fragment: WixFragment, output_path: Path) -> Path:
    """便捷函数：写入片段文件"""
    return FragmentWriter(fragment).write(output_path)
