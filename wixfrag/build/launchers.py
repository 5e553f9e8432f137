"""
启动器、文件关联与快捷方式目录

把配置中的启动器和文件关联描述转换为带安装期路径的只读记录。
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PureWindowsPath
from typing import List, Optional

from ..config.schema import FileAssociationModel, LauncherModel
from .identifiers import DESKTOP_PATH, PROGRAM_MENU_PATH


@dataclass(frozen=True)
class LauncherInfo:
    """启动器"""
    name: str
    path: PureWindowsPath
    menu: bool = True
    shortcut: bool = True
    service: bool = False
    description: Optional[str] = None

    @classmethod
    def from_model(cls, model: LauncherModel, launchers_dir: PureWindowsPath) -> 'LauncherInfo':
        return cls(
            name=model.name,
            path=launchers_dir / f"{model.name}.exe",
            menu=model.menu,
            shortcut=model.shortcut,
            service=model.service,
            description=model.description,
        )


@dataclass(frozen=True)
class FileAssociation:
    """文件关联

    extensions 不含空扩展名；icon 为安装后的图标路径，源文件不存在时为 None。
    """
    launcher_path: PureWindowsPath
    extensions: List[str] = field(default_factory=list)
    description: str = ""
    mime_types: List[str] = field(default_factory=list)
    icon: Optional[PureWindowsPath] = None
    icon_source: Optional[Path] = None

    @property
    def icon_file_name(self) -> str:
        """安装后的图标文件名：fa_<扩展名1>_<扩展名2>.ico"""
        return "fa_" + "_".join(self.extensions) + ".ico"

    @classmethod
    def from_model(
        cls,
        model: FileAssociationModel,
        launchers_dir: PureWindowsPath,
        desktop_integration_dir: PureWindowsPath,
    ) -> 'FileAssociation':
        extensions = [ext for ext in model.extensions if ext]
        association = cls(
            launcher_path=launchers_dir / f"{model.launcher}.exe",
            extensions=extensions,
            description=model.description,
            mime_types=list(model.mime_types),
        )

        icon_source = model.icon
        if icon_source is None or not Path(icon_source).is_file():
            return association

        return cls(
            launcher_path=association.launcher_path,
            extensions=extensions,
            description=model.description,
            mime_types=list(model.mime_types),
            icon=desktop_integration_dir / association.icon_file_name,
            icon_source=Path(icon_source).absolute(),
        )


@dataclass(frozen=True)
class LauncherAsService:
    """以服务方式运行的启动器"""
    name: str
    launcher_path: PureWindowsPath
    description: str = ""

    @property
    def service_name(self) -> str:
        return self.name

    @classmethod
    def from_launcher(cls, launcher: LauncherInfo) -> 'LauncherAsService':
        return cls(
            name=launcher.name,
            launcher_path=launcher.path,
            description=launcher.description or launcher.name,
        )


class ShortcutFolder(Enum):
    """快捷方式目录

    值为 (根目录, 安装期属性名)。属性值为 1 时才安装对应的快捷方式。
    """
    PROGRAM_MENU = (PROGRAM_MENU_PATH, "INSTALL_STARTMENU_SHORTCUT")
    DESKTOP = (DESKTOP_PATH, "INSTALL_DESKTOP_SHORTCUT")

    @property
    def root(self) -> PureWindowsPath:
        return self.value[0]

    @property
    def property_name(self) -> str:
        return self.value[1]

    def path(self, menu_group: str) -> PureWindowsPath:
        """快捷方式所在目录：开始菜单下带分组，桌面直接使用根目录"""
        if self is ShortcutFolder.PROGRAM_MENU:
            return self.root / menu_group
        return self.root

    def is_requested(self, launcher: LauncherInfo) -> bool:
        """启动器是否要求在此目录创建快捷方式"""
        if self is ShortcutFolder.PROGRAM_MENU:
            return launcher.menu
        return launcher.shortcut
