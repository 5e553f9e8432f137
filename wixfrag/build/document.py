"""
片段文档模型

Fragment Assembler 的输出：目录声明、组件、组件组、属性和图标，可直接序列化为 WiX XML。
集合在这里排序，序列化结果只取决于输入。
"""

from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import Dict, Iterable, List, Optional, Tuple

from .components import Component
from .toolset import WixToolset


class ComponentGroup:
    """组件组：有序、无重复、忽略空项"""

    def __init__(self, group_id: str, component_ids: Optional[Iterable[Optional[str]]] = None):
        self.id = group_id
        self._ids: List[str] = []
        self._seen = set()
        self.extend(component_ids or [])

    def add(self, component_id: Optional[str]) -> None:
        if not component_id or component_id in self._seen:
            return
        self._seen.add(component_id)
        self._ids.append(component_id)

    def extend(self, component_ids: Iterable[Optional[str]]) -> None:
        for component_id in component_ids:
            self.add(component_id)

    @property
    def component_ids(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._seen

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(self._ids)


@dataclass(frozen=True)
class DirectoryDeclaration:
    """DirectoryRef(parent_id) > Directory(id, name)"""
    path: PureWindowsPath
    parent_id: str
    id: str
    name: str


@dataclass(frozen=True)
class BranchLevel:
    """根分支的一层

    standard 为 True 时使用 StandardDirectory 简写；name 为 None 表示知名目录，不带 Name。
    """
    id: str
    name: Optional[str] = None
    standard: bool = False


@dataclass(frozen=True)
class DirectoryBranch:
    """从根目录到某个目录的嵌套声明

    ref 为外层 DirectoryRef 的 Id；为 None 时各层直接位于 Fragment 下（TARGETDIR 隐式存在）。
    """
    path: PureWindowsPath
    ref: Optional[str]
    levels: Tuple[BranchLevel, ...]


@dataclass(frozen=True)
class Property:
    id: str
    value: str


@dataclass(frozen=True)
class RegistrySearchProperty:
    """由 RegistrySearch 填充的属性"""
    id: str
    search_id: str
    root: str
    key: str
    name: str
    type: str = "raw"


@dataclass(frozen=True)
class IconDeclaration:
    id: str
    source: Path
    path: PureWindowsPath


@dataclass
class WixFragment:
    """生成结果"""
    toolset: WixToolset
    win64: bool = True
    components: Dict[str, Component] = field(default_factory=dict)
    groups: List[ComponentGroup] = field(default_factory=list)
    directories: List[DirectoryDeclaration] = field(default_factory=list)
    branches: List[DirectoryBranch] = field(default_factory=list)
    properties: List[Property] = field(default_factory=list)
    search_properties: List[RegistrySearchProperty] = field(default_factory=list)
    icons: List[IconDeclaration] = field(default_factory=list)

    def group(self, group_id: str) -> ComponentGroup:
        for group in self.groups:
            if group.id == group_id:
                return group
        raise KeyError(group_id)

    def component(self, component_id: str) -> Component:
        return self.components[component_id]

    def group_components(self, group_id: str) -> List[Component]:
        return [self.components[component_id] for component_id in self.group(group_id)]

    def get_stats(self) -> Dict[str, int]:
        return {
            'components': len(self.components),
            'groups': len(self.groups),
            'directories': len(self.directories),
            'branches': len(self.branches),
            'icons': len(self.icons),
        }
