"""
片段装配

把布局事件、目录树、启动器和文件关联组装成最终的 WixFragment：
- FileAssociations 组：每个文件关联扩展名一个 ProgId 组件
- Shortcuts 组：快捷方式组件，以及非知名快捷方式目录的目录声明
- Files 组：文件组件、目录树组件、目录递归删除辅助组件、服务配置组件
以及每个已启用快捷方式目录的安装属性和去重后的图标声明。
"""

from dataclasses import dataclass, field
from pathlib import PurePath, PureWindowsPath
from typing import Iterable, List, Optional, Set, Tuple, Union

from ..config.schema import Architecture, FragmentConfig
from ..utils.logging import fragment_logger
from .components import ComponentAssembler, RemoveFolderExPayload
from .directories import DirectoryTree, directory_sort_key
from .document import (
    BranchLevel,
    ComponentGroup,
    DirectoryBranch,
    DirectoryDeclaration,
    IconDeclaration,
    Property,
    RegistrySearchProperty,
    WixFragment,
)
from .identifiers import (
    INSTALLDIR,
    KNOWN_DIRS,
    LOCAL_PROGRAM_FILES,
    PROGRAM_FILES_32,
    PROGRAM_FILES_64,
    SYSTEM_DIRS,
    TARGETDIR,
    Role,
    derive_id,
    identifier,
    require_root_path,
    to_wix_path,
)
from .launchers import FileAssociation, LauncherAsService, LauncherInfo, ShortcutFolder
from .layout import CopyFile, LayoutEvent
from .toolset import WixToolset


# 组件组名称
FILES_GROUP = "Files"
SHORTCUTS_GROUP = "Shortcuts"
FILE_ASSOCIATIONS_GROUP = "FileAssociations"


@dataclass(frozen=True)
class FragmentSettings:
    """一次生成过程的全局设置"""
    toolset: WixToolset
    system_wide: bool
    install_root: PureWindowsPath
    registry_key: str
    menu_group: str
    shortcut_folders: Tuple[ShortcutFolder, ...] = field(default_factory=tuple)
    win64: bool = True

    @classmethod
    def from_config(cls, config: FragmentConfig, toolset: Optional[WixToolset] = None) -> 'FragmentSettings':
        toolset = toolset or WixToolset.parse(config.wix.version)
        win64 = config.install.arch == Architecture.X64

        if not config.install.system_wide:
            base = LOCAL_PROGRAM_FILES
        elif win64:
            base = PROGRAM_FILES_64
        else:
            base = PROGRAM_FILES_32

        folders = []
        if config.shortcuts.start_menu:
            folders.append(ShortcutFolder.PROGRAM_MENU)
        if config.shortcuts.desktop:
            folders.append(ShortcutFolder.DESKTOP)

        return cls(
            toolset=toolset,
            system_wide=config.install.system_wide,
            install_root=base.joinpath(*PureWindowsPath(config.get_install_dir()).parts),
            registry_key=config.get_registry_key_path(),
            menu_group=config.get_menu_group(),
            shortcut_folders=tuple(folders),
            win64=win64,
        )


class FragmentAssembler:
    """片段装配器，每次生成使用一个新实例"""

    def __init__(self, settings: FragmentSettings):
        self.settings = settings
        self.toolset = settings.toolset
        self.components = ComponentAssembler(
            toolset=settings.toolset,
            system_wide=settings.system_wide,
            registry_key=settings.registry_key,
            menu_group=settings.menu_group,
            shortcut_folders=list(settings.shortcut_folders),
        )
        self.fragment = WixFragment(toolset=settings.toolset, win64=settings.win64)

    def assemble(
        self,
        events: Iterable[LayoutEvent],
        tree: DirectoryTree,
        launchers: Optional[List[LauncherInfo]] = None,
        associations: Optional[List[FileAssociation]] = None,
        services: Optional[List[LauncherAsService]] = None,
        service_installer: Optional[PureWindowsPath] = None,
    ) -> WixFragment:
        """组装片段

        Raises:
            InvalidPathError: 路径不在任何根目录下，或快捷方式没有对应的已启用目录
        """
        copies = [event for event in events if isinstance(event, CopyFile)]

        self.fragment.groups.append(self._file_associations_group(associations or []))
        self.fragment.groups.append(self._shortcuts_group(launchers or []))
        self.fragment.groups.append(
            self._files_group(copies, tree, services or [], service_installer)
        )

        for folder in self.settings.shortcut_folders:
            self.fragment.properties.append(Property(folder.property_name, "1"))

        self.fragment.icons.extend(self._icons(copies))

        for component in self.components.components:
            self.fragment.components[component.id] = component

        fragment_logger.debug(
            "组件组: " + ", ".join(f"{g.id}={len(g)}" for g in self.fragment.groups)
        )
        return self.fragment

    def root_branch(self, path: Union[str, PurePath]) -> DirectoryBranch:
        """从最外层根目录到 path 的嵌套目录声明"""
        install_path = require_root_path(path)
        first = PureWindowsPath(install_path.parts[0])

        if self.toolset.uses_standard_directory and first == TARGETDIR:
            ref = None
        else:
            ref = identifier(first, Role.FOLDER)

        levels = []
        current = first
        system_dir = True
        for name in install_path.parts[1:]:
            current = current / name
            if system_dir and current not in SYSTEM_DIRS:
                system_dir = False

            if current == self.settings.install_root:
                level_id = INSTALLDIR.name
            else:
                level_id = identifier(current, Role.FOLDER)

            levels.append(BranchLevel(
                id=level_id,
                name=None if system_dir else current.name,
                standard=self.toolset.uses_standard_directory and current in SYSTEM_DIRS,
            ))

        return DirectoryBranch(path=install_path, ref=ref, levels=tuple(levels))

    def _file_associations_group(self, associations: List[FileAssociation]) -> ComponentGroup:
        group = ComponentGroup(FILE_ASSOCIATIONS_GROUP)
        for association in associations:
            group.extend(self.components.add_file_association(association))
        return group

    def _shortcuts_group(self, launchers: List[LauncherInfo]) -> ComponentGroup:
        group = ComponentGroup(SHORTCUTS_GROUP)
        folder_paths: Set[PureWindowsPath] = set()

        for launcher in launchers:
            for folder in self.settings.shortcut_folders:
                if not folder.is_requested(launcher):
                    continue

                group.add(self.components.add_shortcut(launcher, folder))

                folder_path = folder.path(self.settings.menu_group)
                if not self.toolset.uses_standard_directory or folder_path not in SYSTEM_DIRS:
                    folder_paths.add(folder_path)

        for folder_path in sorted(folder_paths, key=directory_sort_key):
            self.fragment.branches.append(self.root_branch(folder_path))

        return group

    def _files_group(
        self,
        copies: List[CopyFile],
        tree: DirectoryTree,
        services: List[LauncherAsService],
        service_installer: Optional[PureWindowsPath],
    ) -> ComponentGroup:
        group = ComponentGroup(FILES_GROUP)

        for copy in copies:
            attached = services if service_installer is not None and copy.dst == service_installer else None
            group.add(self.components.add_file(copy.src, copy.dst, attached))

        group.extend(self._directory_hierarchy(tree))
        group.add(self._directory_cleaner())

        for service in services:
            group.add(self.components.add_service_config(service))

        return group

    def _directory_hierarchy(self, tree: DirectoryTree) -> List[str]:
        system_wide = self.settings.system_wide
        component_ids = []

        create_dirs = set(tree.empty_dirs)
        if not system_wide:
            create_dirs.add(INSTALLDIR)
        for directory in sorted(create_dirs, key=directory_sort_key):
            component_ids.append(self.components.add_create_folder(directory))

        if not system_wide:
            # 当前用户安装：每个没有删除标记的目录都需要一个 RemoveFolder 组件
            for directory in sorted(set(tree.all_dirs) | {INSTALLDIR}, key=directory_sort_key):
                if not self.components.has_removal_marker(directory):
                    component_ids.append(self.components.add_remove_folder(directory))

        for directory in tree.sorted_dirs():
            if directory in KNOWN_DIRS:
                continue
            self.fragment.directories.append(DirectoryDeclaration(
                path=directory,
                parent_id=identifier(directory.parent, Role.FOLDER),
                id=identifier(directory, Role.FOLDER),
                name=directory.name,
            ))

        self.fragment.branches.append(self.root_branch(self.settings.install_root))
        return component_ids

    def _directory_cleaner(self) -> Optional[str]:
        """卸载时递归删除安装目录的辅助组件（需要 WiX 3.6+）"""
        if not self.toolset.with_wix36_features:
            return None

        base_id = derive_id(INSTALLDIR, "rm_rf")
        property_id = base_id.upper()

        self.fragment.search_properties.append(RegistrySearchProperty(
            id=property_id,
            search_id=derive_id(INSTALLDIR, "regsearch"),
            root="HKLM" if self.settings.system_wide else "HKCU",
            key=self.settings.registry_key,
            name=property_id,
        ))

        return self.components.add_registry_component(
            INSTALLDIR,
            "rm_rf",
            name=property_id,
            value=to_wix_path(INSTALLDIR),
            payload=RemoveFolderExPayload(property_id=property_id),
            auto_guid=True,
        )

    def _icons(self, copies: List[CopyFile]) -> List[IconDeclaration]:
        icons = {}
        for copy in copies:
            if copy.src.name.lower().endswith(".ico") and copy.dst not in icons:
                icons[copy.dst] = IconDeclaration(
                    id=identifier(copy.dst, Role.ICON),
                    source=copy.src,
                    path=copy.dst,
                )
        return [icons[path] for path in sorted(icons, key=directory_sort_key)]
