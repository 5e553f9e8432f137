"""
标识符派生

由 (安装路径, 角色) 确定性地派生 WiX 元素 Id 和组件 GUID。

派生方式：对 "角色@小写路径" 的 UTF-8 字节计算基于名称的 UUID（MD5，版本 3），
去掉连字符后加上角色前缀。GUID 使用独立的盐，与 Id 不会相互碰撞。
路径在哈希前统一转为小写（Windows 文件系统不区分大小写）。
"""

import hashlib
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath, PureWindowsPath
from typing import Optional, Union

from ..utils.paths import parent_or_none, to_install_path
from .build_context import BuildError


class InvalidPathError(BuildError, ValueError):
    """路径不在任何根目录之下，或快捷方式路径不属于任何已启用的快捷方式目录"""

    def __init__(self, path: Union[str, PurePath], reason: str = ""):
        message = f"无效路径 [{path}]"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path


# 根目录
TARGETDIR = PureWindowsPath("TARGETDIR")
INSTALLDIR = PureWindowsPath("INSTALLDIR")
ROOT_DIRS = frozenset({INSTALLDIR, TARGETDIR})

# 系统知名目录
PROGRAM_MENU_PATH = TARGETDIR / "ProgramMenuFolder"
DESKTOP_PATH = TARGETDIR / "DesktopFolder"
PROGRAM_FILES_64 = TARGETDIR / "ProgramFiles64Folder"
PROGRAM_FILES_32 = TARGETDIR / "ProgramFilesFolder"
LOCAL_PROGRAM_FILES = TARGETDIR / "LocalAppDataFolder"

SYSTEM_DIRS = frozenset({
    TARGETDIR,
    PROGRAM_MENU_PATH,
    DESKTOP_PATH,
    PROGRAM_FILES_64,
    PROGRAM_FILES_32,
    LOCAL_PROGRAM_FILES,
})

# 不需要（也不允许）重复声明、只能引用的目录
KNOWN_DIRS = SYSTEM_DIRS | {INSTALLDIR}

# 位于用户配置文件下的目录，其注册表键路径总是写到 HKCU
USER_PROFILE_DIRS = frozenset({LOCAL_PROGRAM_FILES, PROGRAM_MENU_PATH, DESKTOP_PATH})


@dataclass(frozen=True)
class RoleSpec:
    """角色的固定配置"""
    tag: str                        # 参与哈希的角色名，同时是 WiX 元素名
    prefix: str                     # 标识符前缀
    is_file: bool = False           # 以路径的父目录作为所属目录
    registry_key_path: bool = False  # 全机安装时以注册表值作为键路径


class Role(Enum):
    """路径被引用的用途"""
    FILE = RoleSpec("File", "file", is_file=True, registry_key_path=True)
    FOLDER = RoleSpec("Folder", "dir")
    SHORTCUT = RoleSpec("Shortcut", "shortcut", is_file=True, registry_key_path=True)
    PROG_ID = RoleSpec("ProgId", "progid", is_file=True, registry_key_path=True)
    ICON = RoleSpec("Icon", "icon")
    CREATE_FOLDER = RoleSpec("CreateFolder", "mkdir", registry_key_path=True)
    REMOVE_FOLDER = RoleSpec("RemoveFolder", "rm", registry_key_path=True)

    @property
    def tag(self) -> str:
        return self.value.tag

    @property
    def prefix(self) -> str:
        return self.value.prefix

    @classmethod
    def from_name(cls, name: str) -> 'Role':
        """按角色名（不区分大小写，接受 "file"、"ProgId"、"prog_id" 等写法）查找角色"""
        key = name.replace('_', '').replace('-', '').lower()
        for role in cls:
            if role.tag.lower() == key or role.name.replace('_', '').lower() == key:
                return role
        raise ValueError(f"未知角色: {name}")


# 生成组件的角色
COMPONENT_ROLES = frozenset({
    Role.FILE,
    Role.SHORTCUT,
    Role.PROG_ID,
    Role.CREATE_FOLDER,
    Role.REMOVE_FOLDER,
})


def require_root_path(path: Union[str, PurePath]) -> PureWindowsPath:
    """校验路径位于某个根目录之下，返回规范化后的安装期路径

    Raises:
        InvalidPathError: 绝对路径或首段不是根目录，或含有 ".." 段
    """
    install_path = to_install_path(path)
    if install_path.is_absolute() or install_path.anchor or not install_path.parts:
        raise InvalidPathError(path, "必须是相对于根目录的路径")
    if PureWindowsPath(install_path.parts[0]) not in ROOT_DIRS:
        raise InvalidPathError(path, f"首段必须是 {' 或 '.join(sorted(str(d) for d in ROOT_DIRS))}")
    if ".." in install_path.parts[1:]:
        raise InvalidPathError(path, "不能包含 '..' 段")
    return install_path


def _name_uuid(path: PureWindowsPath, salt: str) -> uuid.UUID:
    key = f"{salt}@{str(path).lower()}"
    return uuid.UUID(bytes=hashlib.md5(key.encode('utf-8')).digest(), version=3)


def _short_hash(text: str) -> int:
    """32 位有符号多项式哈希（s[0]*31^(n-1) + ... + s[n-1]）"""
    h = 0
    for ch in text:
        h = (31 * h + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def derive_id(path: Union[str, PurePath], prefix: str, salt: Optional[str] = None) -> str:
    """以任意前缀派生标识符，salt 默认与前缀相同"""
    install_path = require_root_path(path)
    return prefix + _name_uuid(install_path, salt or prefix).hex


def identifier(path: Union[str, PurePath], role: Role) -> str:
    """派生 WiX 元素 Id

    知名目录的 Folder Id 就是其目录名（INSTALLDIR、ProgramMenuFolder 等）。
    Icon Id 在 WiX 中长度受限，改用短哈希。
    """
    install_path = require_root_path(path)

    if role is Role.FOLDER and install_path in KNOWN_DIRS:
        return install_path.name

    result = derive_id(install_path, role.prefix, role.tag)

    if role is Role.ICON:
        result = f"{role.prefix}{_short_hash(result)}".replace("-", "_")

    return result


def derive_guid(path: Union[str, PurePath], salt: str) -> str:
    """以任意盐派生 GUID（带花括号）"""
    install_path = require_root_path(path)
    return "{%s}" % _name_uuid(install_path, f"{salt}.Guid")


def guid(path: Union[str, PurePath], role: Role) -> str:
    """派生组件 GUID（带花括号）"""
    return derive_guid(path, role.tag)


def component_id(path: Union[str, PurePath], role: Role) -> str:
    """组件 Id：元素 Id 加前缀 c"""
    return "c" + identifier(path, role)


def owning_directory(path: Union[str, PurePath], role: Role) -> PureWindowsPath:
    """组件所属目录：文件类角色为父目录，目录类角色为路径本身"""
    install_path = require_root_path(path)
    if role.value.is_file:
        parent = parent_or_none(install_path)
        if parent is None:
            raise InvalidPathError(path, "文件路径缺少所属目录")
        return parent
    return install_path


def to_wix_path(path: Union[str, PurePath]) -> str:
    """转换为 WiX 格式化路径

    INSTALLDIR -> [INSTALLDIR]
    TARGETDIR\\ProgramFiles64Folder\\foo\\bar -> [ProgramFiles64Folder]foo\\bar
    """
    install_path = require_root_path(path)
    candidates = sorted(KNOWN_DIRS, key=lambda d: len(d.parts), reverse=True)
    for root in candidates:
        if install_path == root or root in install_path.parents:
            relative = install_path.relative_to(root)
            suffix = "" if str(relative) == "." else str(relative)
            return f"[{root.name}]{suffix}"
    raise InvalidPathError(path, "不在任何知名目录之下")
