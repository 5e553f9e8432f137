"""
配置 Schema 定义

使用 Pydantic 定义片段生成的 YAML 配置模型，支持验证和类型检查。
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class Architecture(str, Enum):
    """目标架构枚举"""
    X64 = "x64"
    X86 = "x86"


class ProductModel(BaseModel):
    """产品信息模型"""
    name: str = Field(..., description="产品名称", min_length=1, max_length=100)
    vendor: str = Field(..., description="厂商名称", min_length=1, max_length=100)
    version: str = Field(..., description="版本号", min_length=1, max_length=20)
    description: Optional[str] = Field(None, description="产品描述", max_length=500)

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: str) -> str:
        """验证版本号格式（MSI 只接受 2-4 段纯数字版本）"""
        if not re.match(r'^\d+(\.\d+){1,3}$', v):
            raise ValueError("版本号格式不正确，支持格式：1.0、1.0.0、1.0.0.0")
        return v


class InstallModel(BaseModel):
    """安装配置模型"""
    system_wide: bool = Field(True, description="是否为全机安装（否则为当前用户安装）")
    install_dir: Optional[str] = Field(
        None,
        description="相对于 Program Files（或用户 LocalAppData）的安装目录，默认为产品名称"
    )
    menu_group: Optional[str] = Field(None, description="开始菜单分组名称，默认为厂商名称")
    arch: Architecture = Field(Architecture.X64, description="目标架构")

    @field_validator('install_dir')
    @classmethod
    def validate_install_dir(cls, v: Optional[str]) -> Optional[str]:
        """验证安装目录：不允许盘符和上级目录引用，去掉首尾反斜杠"""
        if v is None:
            return None

        v = v.strip().replace('/', '\\')
        if ':' in v or '..' in v:
            raise ValueError(f"安装目录必须是相对路径且不能包含 '..': {v}")

        v = v.strip('\\')
        if not v:
            raise ValueError("安装目录不能为空")
        return v


class ShortcutsModel(BaseModel):
    """快捷方式配置模型"""
    start_menu: bool = Field(False, description="是否创建开始菜单快捷方式")
    desktop: bool = Field(False, description="是否创建桌面快捷方式")


class LayoutModel(BaseModel):
    """应用镜像布局（各槽位相对于镜像根目录的路径）"""
    launchers: str = Field("", description="启动器所在目录")
    app: str = Field("app", description="应用文件目录")
    runtime: str = Field("runtime", description="运行时目录")
    desktop_integration: str = Field("", description="桌面集成资源（图标等）目录")

    @field_validator('launchers', 'app', 'runtime', 'desktop_integration')
    @classmethod
    def validate_relative(cls, v: str) -> str:
        """槽位路径必须是镜像内的相对路径"""
        v = v.strip().replace('\\', '/').strip('/')
        if ':' in v or '..' in v.split('/'):
            raise ValueError(f"布局路径必须是镜像内的相对路径: {v}")
        return v


class LauncherModel(BaseModel):
    """启动器描述"""
    name: str = Field(..., description="启动器名称（不含 .exe）", min_length=1)
    menu: bool = Field(True, description="是否创建开始菜单快捷方式")
    shortcut: bool = Field(True, description="是否创建桌面快捷方式")
    service: bool = Field(False, description="是否作为后台服务安装")
    description: Optional[str] = Field(None, description="服务描述")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if any(ch in v for ch in '<>:"/\\|?*'):
            raise ValueError(f"启动器名称包含非法字符: {v}")
        return v


class FileAssociationModel(BaseModel):
    """文件关联描述"""
    launcher: str = Field(..., description="处理该文件类型的启动器名称", min_length=1)
    extensions: List[str] = Field(default_factory=list, description="扩展名列表（不含点）")
    icon: Optional[Union[str, Path]] = Field(None, description="文件类型图标 (.ico)")
    description: str = Field("", description="文件类型描述")
    mime_types: List[str] = Field(default_factory=list, description="MIME 类型列表")

    @field_validator('extensions')
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """去掉扩展名前导的点和空白（空扩展名保留给后续过滤）"""
        return [ext.strip().lstrip('.') for ext in v]

    @field_validator('icon')
    @classmethod
    def validate_icon(cls, v: Optional[Union[str, Path]]) -> Optional[Path]:
        if v is None:
            return None
        return Path(v)


class ServiceInstallerModel(BaseModel):
    """服务安装工具描述"""
    source: Union[str, Path] = Field(..., description="服务安装工具源文件路径")
    install_name: Optional[str] = Field(None, description="安装后的文件名，默认与源文件同名")

    @field_validator('source')
    @classmethod
    def validate_source(cls, v: Union[str, Path]) -> Path:
        return Path(v)


class WixModel(BaseModel):
    """WiX 工具集配置"""
    version: str = Field("3.14", description="目标 WiX 工具集版本", min_length=1)


class ConfigModel(BaseModel):
    """配置元信息模型"""
    version: int = Field(1, description="配置 schema 版本", ge=1)

    @field_validator('version')
    @classmethod
    def validate_config_version(cls, v: int) -> int:
        SUPPORTED_VERSIONS = [1]
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"不支持的配置版本 {v}，支持的版本: {SUPPORTED_VERSIONS}")
        return v


class FragmentConfig(BaseModel):
    """片段生成主配置模型

    这是整个配置文件的根模型，包含所有配置部分。
    """

    # 元信息
    config: ConfigModel = Field(default_factory=ConfigModel, description="配置元信息")

    # 必填部分
    product: ProductModel = Field(..., description="产品信息")
    app_image: Union[str, Path] = Field(..., description="应用镜像根目录")

    # 可选部分
    install: InstallModel = Field(default_factory=InstallModel, description="安装配置")
    shortcuts: ShortcutsModel = Field(default_factory=ShortcutsModel, description="快捷方式配置")
    layout: LayoutModel = Field(default_factory=LayoutModel, description="应用镜像布局")
    exclude: Optional[List[str]] = Field(None, description="排除模式列表（glob 格式）")
    launchers: List[LauncherModel] = Field(default_factory=list, description="启动器列表")
    file_associations: List[FileAssociationModel] = Field(
        default_factory=list, description="文件关联列表"
    )
    service_installer: Optional[ServiceInstallerModel] = Field(None, description="服务安装工具")
    wix: WixModel = Field(default_factory=WixModel, description="WiX 工具集配置")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    @field_validator('app_image')
    @classmethod
    def validate_app_image(cls, v: Union[str, Path]) -> Path:
        return Path(v)

    @model_validator(mode='after')
    def validate_references(self) -> 'FragmentConfig':
        """验证启动器引用与服务安装工具的一致性"""
        names = [launcher.name for launcher in self.launchers]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"启动器名称重复: {', '.join(duplicates)}")

        for fa in self.file_associations:
            if fa.launcher not in names:
                raise ValueError(f"文件关联引用了不存在的启动器: {fa.launcher}")

        if any(launcher.service for launcher in self.launchers) and self.service_installer is None:
            raise ValueError("存在以服务方式运行的启动器，但未配置 service_installer")

        return self

    def get_install_dir(self) -> str:
        """获取安装目录名称"""
        return self.install.install_dir or self.product.name

    def get_menu_group(self) -> str:
        """获取开始菜单分组名称"""
        return self.install.menu_group or self.product.vendor

    def get_registry_key_path(self) -> str:
        """获取按产品和版本区分的注册表键路径"""
        return "\\".join(["Software", self.product.vendor, self.product.name, self.product.version])

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.model_dump(exclude_none=True)

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FragmentConfig':
        """从字典创建配置实例"""
        return cls.model_validate(data)
