"""片段生成模块

提供从应用布局生成 WiX 片段的核心功能。
"""

from .build_context import BuildContext, BuildError
from .builder import Builder, BuildResult
from .build_pipeline import BuildPipeline
from .components import Component, ComponentAssembler
from .directories import DirectoryNode, DirectoryTree, DirectoryTreeBuilder
from .document import ComponentGroup, WixFragment
from .fragment import FragmentAssembler, FragmentSettings
from .identifiers import (
    InvalidPathError,
    Role,
    component_id,
    guid,
    identifier,
    to_wix_path,
)
from .launchers import FileAssociation, LauncherAsService, LauncherInfo, ShortcutFolder
from .layout import ApplicationLayout, CopyFile, EnsureDirectory, LayoutTransformer
from .toolset import UnsupportedToolsetError, WixToolset, WixToolsetType
from .writer import FragmentWriter, SerializationError, write_fragment

__all__ = [
    # 主生成器
    "Builder",
    "BuildResult",
    "BuildPipeline",
    "BuildContext",

    # 异常
    "BuildError",
    "InvalidPathError",
    "UnsupportedToolsetError",
    "SerializationError",

    # 标识符
    "Role",
    "identifier",
    "guid",
    "component_id",
    "to_wix_path",

    # 布局
    "ApplicationLayout",
    "LayoutTransformer",
    "CopyFile",
    "EnsureDirectory",

    # 目录树
    "DirectoryTree",
    "DirectoryTreeBuilder",
    "DirectoryNode",

    # 组件与片段
    "Component",
    "ComponentAssembler",
    "ComponentGroup",
    "FragmentAssembler",
    "FragmentSettings",
    "WixFragment",
    "FragmentWriter",
    "write_fragment",

    # 输入记录
    "LauncherInfo",
    "FileAssociation",
    "LauncherAsService",
    "ShortcutFolder",

    # 工具集
    "WixToolset",
    "WixToolsetType",
]
