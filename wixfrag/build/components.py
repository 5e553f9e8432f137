"""
组件装配

每个可安装单元（文件、快捷方式、文件关联、空目录、目录删除标记、服务配置）生成一条
不可变的 Component 记录：标识符、GUID、所属目录、键路径选择和角色相关的载荷。

键路径策略：
- 全机安装：以产品/版本注册表键下的注册表值作为键路径
- 当前用户安装：组件自身的主元素（文件、快捷方式、目录）作为键路径

目录清理策略：所属目录不是知名目录、且角色为文件类或（当前用户安装下的）CreateFolder 时，
组件附带一个卸载时删除目录的标记。标记 Id 带有按目录递增的序号，
全机安装下每个目录最多一个标记。
"""

from dataclasses import dataclass
from pathlib import Path, PurePath, PureWindowsPath
from typing import Dict, List, Optional, Set, Tuple, Union

from ..utils.logging import components_logger
from ..utils.paths import parent_or_none, starts_with, strip_suffix
from .identifiers import (
    INSTALLDIR,
    KNOWN_DIRS,
    USER_PROFILE_DIRS,
    InvalidPathError,
    Role,
    derive_guid,
    derive_id,
    guid,
    identifier,
    owning_directory,
    require_root_path,
)
from .launchers import FileAssociation, LauncherAsService, LauncherInfo, ShortcutFolder
from .toolset import WixToolset


@dataclass(frozen=True)
class RegistryKeyPath:
    """注册表键路径"""
    root: str                     # HKLM / HKCU
    key: str
    name: str = "ProductCode"
    value: str = "[ProductCode]"
    action: Optional[str] = None  # WiX 3.6 之前需要 createAndRemoveOnUninstall


@dataclass(frozen=True)
class RemoveFolderMarker:
    """卸载时删除目录的标记"""
    id: str
    directory: PureWindowsPath


@dataclass(frozen=True)
class ServiceInstallEntry:
    """服务安装工具文件组件内的 ServiceInstall + ServiceControl"""
    install_id: str
    control_id: str
    name: str
    description: str
    arguments: str


@dataclass(frozen=True)
class FilePayload:
    source: Path
    name: Optional[str] = None    # 安装后的文件名与源文件名不同时才设置
    services: Tuple[ServiceInstallEntry, ...] = ()


@dataclass(frozen=True)
class ShortcutPayload:
    name: str
    target: str                   # [#文件Id]
    condition: str                # 快捷方式目录的安装属性
    working_directory: str = "INSTALLDIR"


@dataclass(frozen=True)
class ProgIdPayload:
    extension: str
    description: str
    verb_target: str              # 启动器的文件 Id
    icon: Optional[str] = None    # 图标文件的文件 Id
    content_type: Optional[str] = None
    declare_mime: bool = False    # 该 MIME 类型第一次出现时才声明为默认


@dataclass(frozen=True)
class ServiceConfigPayload:
    service_name: str
    first_failure: str = "restart"
    second_failure: str = "restart"
    third_failure: str = "none"
    restart_delay: int = 10
    reset_period: int = 1


@dataclass(frozen=True)
class RemoveFolderExPayload:
    property_id: str


Payload = Union[
    FilePayload, ShortcutPayload, ProgIdPayload, ServiceConfigPayload, RemoveFolderExPayload, None
]


@dataclass(frozen=True)
class Component:
    """可安装单元

    role 为 None 的组件只由注册表值锚定（服务配置、目录递归删除辅助组件）。
    key_path 为 True 表示组件自身的主元素就是键路径。
    """
    id: str
    guid: str
    path: PureWindowsPath
    directory: PureWindowsPath
    role: Optional[Role]
    element_id: Optional[str] = None
    key_path: bool = False
    registry_key_path: Optional[RegistryKeyPath] = None
    remove_folder: Optional[RemoveFolderMarker] = None
    payload: Payload = None


class ComponentAssembler:
    """组件装配器

    持有一次生成过程中的累积状态：按目录的删除标记计数器、已声明的 MIME 类型。
    """

    def __init__(
        self,
        toolset: WixToolset,
        system_wide: bool,
        registry_key: str,
        menu_group: str,
        shortcut_folders: Optional[List[ShortcutFolder]] = None,
    ):
        self.toolset = toolset
        self.system_wide = system_wide
        self.registry_key = registry_key
        self.menu_group = menu_group
        self.shortcut_folders = list(shortcut_folders or [])

        self._marker_counters: Dict[PureWindowsPath, int] = {}
        self._declared_mimes: Set[str] = set()
        self._components: Dict[str, Component] = {}

    @property
    def components(self) -> List[Component]:
        return list(self._components.values())

    def get(self, component_id: str) -> Component:
        return self._components[component_id]

    def has_removal_marker(self, directory: Union[str, PurePath]) -> bool:
        return require_root_path(directory) in self._marker_counters

    def registry_key_path(
        self,
        directory: PureWindowsPath,
        name: str = "ProductCode",
        value: str = "[ProductCode]",
    ) -> RegistryKeyPath:
        """所属目录位于用户配置文件下或当前用户安装时写 HKCU，否则写 HKLM"""
        per_user_location = any(starts_with(directory, root) for root in USER_PROFILE_DIRS)
        root = "HKCU" if per_user_location or not self.system_wide else "HKLM"
        action = None if self.toolset.with_wix36_features else "createAndRemoveOnUninstall"
        return RegistryKeyPath(root=root, key=self.registry_key, name=name, value=value, action=action)

    def add_component(self, path: Union[str, PurePath], role: Role, payload: Payload = None) -> str:
        """添加组件，返回组件 Id"""
        install_path = require_root_path(path)
        directory = owning_directory(install_path, role)

        # 同一 (路径, 角色) 只生成一个组件
        component_id = "c" + identifier(install_path, role)
        if component_id in self._components:
            return component_id

        use_registry = self.system_wide and role.value.registry_key_path
        component = Component(
            id=component_id,
            guid=guid(install_path, role),
            path=install_path,
            directory=directory,
            role=role,
            element_id=None if role is Role.CREATE_FOLDER else identifier(install_path, role),
            key_path=not use_registry,
            registry_key_path=self.registry_key_path(directory) if use_registry else None,
            remove_folder=self._removal_marker(role, directory),
            payload=payload,
        )
        return self._register(component)

    def add_file(
        self,
        src: Path,
        dst: Union[str, PurePath],
        services: Optional[List[LauncherAsService]] = None,
    ) -> str:
        destination = require_root_path(dst)
        name = destination.name if destination.name != Path(src).name else None
        entries = tuple(self._service_entry(service) for service in services or [])
        return self.add_component(destination, Role.FILE, FilePayload(
            source=Path(src),
            name=name,
            services=entries,
        ))

    def add_shortcut(self, launcher: LauncherInfo, folder: ShortcutFolder) -> str:
        """在快捷方式目录中为启动器添加快捷方式

        Raises:
            InvalidPathError: 启动器不在安装目录下，或快捷方式不属于任何已启用的快捷方式目录
        """
        if not starts_with(require_root_path(launcher.path), INSTALLDIR):
            raise InvalidPathError(launcher.path, "启动器必须位于安装目录下")

        name = strip_suffix(launcher.path.name)
        path = folder.path(self.menu_group) / name

        enabled = [f for f in self.shortcut_folders if starts_with(path, f.root)]
        if not enabled:
            raise InvalidPathError(path, "快捷方式不属于任何已启用的快捷方式目录")

        return self.add_component(path, Role.SHORTCUT, ShortcutPayload(
            name=name,
            target=f"[#{identifier(launcher.path, Role.FILE)}]",
            condition=enabled[0].property_name,
        ))

    def add_file_association(self, association: FileAssociation) -> List[str]:
        """每个扩展名一个 ProgId 组件

        同一启动器重复关联的扩展名被跳过，其 MIME 类型不计为已声明。
        """
        content_type = association.mime_types[0] if association.mime_types else None
        icon = identifier(association.icon, Role.FILE) if association.icon else None
        verb_target = identifier(association.launcher_path, Role.FILE)

        component_ids = []
        for extension in association.extensions:
            path = INSTALLDIR / f"{extension}_{association.launcher_path.name}"
            if "c" + identifier(path, Role.PROG_ID) in self._components:
                components_logger.warning(
                    f"扩展名 {extension} 已关联到 {association.launcher_path.name}，忽略重复的关联"
                )
                continue

            declare_mime = content_type is not None and content_type not in self._declared_mimes
            if declare_mime:
                self._declared_mimes.add(content_type)

            component_ids.append(self.add_component(path, Role.PROG_ID, ProgIdPayload(
                extension=extension,
                description=association.description,
                verb_target=verb_target,
                icon=icon,
                content_type=content_type,
                declare_mime=declare_mime,
            )))
        return component_ids

    def add_create_folder(self, directory: Union[str, PurePath]) -> str:
        return self.add_component(directory, Role.CREATE_FOLDER)

    def add_remove_folder(self, directory: Union[str, PurePath]) -> str:
        return self.add_component(directory, Role.REMOVE_FOLDER)

    def add_registry_component(
        self,
        path: Union[str, PurePath],
        prefix: str,
        name: str = "ProductCode",
        value: str = "[ProductCode]",
        payload: Payload = None,
        auto_guid: bool = False,
    ) -> str:
        """添加只由注册表值锚定的组件，所属目录为 path 本身

        auto_guid 为 True 时 GUID 交给 WiX 自动生成（"*"）。
        """
        directory = require_root_path(path)
        component = Component(
            id="c" + derive_id(directory, prefix),
            guid="*" if auto_guid else derive_guid(directory, prefix),
            path=directory,
            directory=directory,
            role=None,
            registry_key_path=self.registry_key_path(directory, name=name, value=value),
            payload=payload,
        )
        return self._register(component)

    def add_service_config(self, service: LauncherAsService) -> str:
        launcher_path = require_root_path(service.launcher_path)
        directory = parent_or_none(launcher_path)
        if directory is None:
            raise InvalidPathError(launcher_path, "启动器路径缺少所属目录")

        component = Component(
            id="c" + derive_id(launcher_path, "svccfg"),
            guid=derive_guid(launcher_path, "svccfg"),
            path=launcher_path,
            directory=directory,
            role=None,
            registry_key_path=self.registry_key_path(directory),
            payload=ServiceConfigPayload(service_name=service.service_name),
        )
        return self._register(component)

    def _service_entry(self, service: LauncherAsService) -> ServiceInstallEntry:
        launcher_path = require_root_path(service.launcher_path)
        return ServiceInstallEntry(
            install_id=derive_id(launcher_path, "svc"),
            control_id=derive_id(launcher_path, "svcctl"),
            name=service.service_name,
            description=service.description,
            arguments=f'"[#{identifier(launcher_path, Role.FILE)}]"',
        )

    def _removal_marker(self, role: Role, directory: PureWindowsPath) -> Optional[RemoveFolderMarker]:
        if directory in KNOWN_DIRS:
            return None
        if not (role.value.is_file or (role is Role.CREATE_FOLDER and not self.system_wide)):
            return None
        if self.system_wide and directory in self._marker_counters:
            return None

        counter = self._marker_counters.get(directory, 0) + 1
        self._marker_counters[directory] = counter
        return RemoveFolderMarker(
            id=f"{identifier(directory, Role.REMOVE_FOLDER)}_{counter}",
            directory=directory,
        )

    def _register(self, component: Component) -> str:
        if component.id in self._components:
            raise ValueError(f"组件 Id 重复: {component.id} ({component.path})")
        self._components[component.id] = component
        components_logger.debug(f"组件 {component.id} -> {component.path}")
        return component.id
