"""
WiX 工具集版本

根据版本号确定目标语法变体：WiX 3 与 WiX 4+ 的元素和属性差异、
StandardDirectory 简写以及 3.6 起才提供的 RemoveFolderEx 支持。
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .build_context import BuildError


class UnsupportedToolsetError(BuildError):
    """不支持的 WiX 工具集版本"""
    pass


class WixToolsetType(str, Enum):
    """语法变体"""
    WIX3 = "wix3"
    WIX4 = "wix4"


# 各语法变体的命名空间：(主命名空间, util 扩展命名空间)
NAMESPACES = {
    WixToolsetType.WIX3: (
        "http://schemas.microsoft.com/wix/2006/wi",
        "http://schemas.microsoft.com/wix/UtilExtension",
    ),
    WixToolsetType.WIX4: (
        "http://wixtoolset.org/schemas/v4/wxs",
        "http://wixtoolset.org/schemas/v4/wxs/util",
    ),
}

_VERSION_PATTERN = re.compile(r'^\d+(\.\d+)*$')


@dataclass(frozen=True)
class WixToolset:
    """目标 WiX 工具集"""
    version: Tuple[int, ...]
    type: WixToolsetType

    @classmethod
    def parse(cls, version: str) -> 'WixToolset':
        """解析版本号

        Args:
            version: 点分版本号，例如 "3.14"、"4.0.5"

        Raises:
            UnsupportedToolsetError: 版本号格式错误或低于 3
        """
        text = str(version).strip()
        if not _VERSION_PATTERN.match(text):
            raise UnsupportedToolsetError(f"无法识别的 WiX 版本号: {version!r}")

        components = tuple(int(part) for part in text.split('.'))
        if components[0] == 3:
            toolset_type = WixToolsetType.WIX3
        elif components[0] >= 4:
            toolset_type = WixToolsetType.WIX4
        else:
            raise UnsupportedToolsetError(f"不支持的 WiX 版本: {text}（需要 3.x 或更高版本）")

        return cls(version=components, type=toolset_type)

    @property
    def version_string(self) -> str:
        return ".".join(str(part) for part in self.version)

    @property
    def with_wix36_features(self) -> bool:
        """3.6 及以上版本提供 util:RemoveFolderEx，且 RegistryKey 不再需要 Action 属性"""
        padded = self.version + (0,) * (2 - len(self.version))
        return padded[:2] >= (3, 6)

    @property
    def uses_standard_directory(self) -> bool:
        """WiX 4 起知名目录使用 StandardDirectory 简写，TARGETDIR 隐式存在"""
        return self.type == WixToolsetType.WIX4

    @property
    def namespace(self) -> str:
        return NAMESPACES[self.type][0]

    @property
    def util_namespace(self) -> str:
        return NAMESPACES[self.type][1]
