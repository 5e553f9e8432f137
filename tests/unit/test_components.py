"""
组件装配单元测试

测试键路径策略、目录删除标记、注册表根键、快捷方式和文件关联组件。
"""

from pathlib import Path

import pytest

from wixfrag.build.components import (
    ComponentAssembler,
    FilePayload,
    ProgIdPayload,
    ServiceConfigPayload,
    ShortcutPayload,
)
from wixfrag.build.identifiers import (
    DESKTOP_PATH,
    INSTALLDIR,
    LOCAL_PROGRAM_FILES,
    PROGRAM_MENU_PATH,
    InvalidPathError,
    Role,
    identifier,
)
from wixfrag.build.launchers import (
    FileAssociation,
    LauncherAsService,
    LauncherInfo,
    ShortcutFolder,
)
from wixfrag.build.toolset import WixToolset

REGISTRY_KEY = "Software\\Acme\\Demo\\1.0"


def make_assembler(system_wide=True, version="3.14", folders=None):
    return ComponentAssembler(
        toolset=WixToolset.parse(version),
        system_wide=system_wide,
        registry_key=REGISTRY_KEY,
        menu_group="Acme",
        shortcut_folders=folders if folders is not None else list(ShortcutFolder),
    )


class TestKeyPathPolicy:
    """键路径策略测试"""

    def test_per_user_file(self):
        """测试当前用户安装时文件自身是键路径"""
        assembler = make_assembler(system_wide=False)
        component = assembler.get(assembler.add_file(Path("App.exe"), INSTALLDIR / "App.exe"))

        assert component.key_path
        assert component.registry_key_path is None
        assert component.role is Role.FILE
        assert component.directory == INSTALLDIR

    def test_per_machine_file(self):
        """测试全机安装时以产品/版本注册表值为键路径"""
        assembler = make_assembler(system_wide=True)
        component = assembler.get(assembler.add_file(Path("App.exe"), INSTALLDIR / "App.exe"))

        assert not component.key_path
        assert component.registry_key_path is not None
        assert component.registry_key_path.root == "HKLM"
        assert component.registry_key_path.key == REGISTRY_KEY
        assert component.registry_key_path.name == "ProductCode"
        assert component.registry_key_path.value == "[ProductCode]"

    def test_per_machine_create_folder(self):
        assembler = make_assembler(system_wide=True)
        component = assembler.get(assembler.add_create_folder(INSTALLDIR / "logs"))

        assert component.registry_key_path is not None
        assert component.element_id is None
        assert component.directory == INSTALLDIR / "logs"

    def test_identifiers(self):
        """测试组件 Id、元素 Id 和 GUID 由路径和角色派生"""
        assembler = make_assembler()
        dst = INSTALLDIR / "app" / "main.jar"
        component = assembler.get(assembler.add_file(Path("main.jar"), dst))

        assert component.id == "c" + identifier(dst, Role.FILE)
        assert component.element_id == identifier(dst, Role.FILE)
        assert component.guid.startswith("{") and component.guid.endswith("}")

    def test_same_path_and_role_is_idempotent(self):
        assembler = make_assembler()
        first = assembler.add_create_folder(INSTALLDIR / "logs")
        second = assembler.add_create_folder(INSTALLDIR / "logs")
        assert first == second
        assert len(assembler.components) == 1


class TestRegistryRoot:
    """注册表根键测试"""

    def test_user_profile_directory_uses_hkcu(self):
        """测试位于用户配置文件下的目录总是写 HKCU"""
        assembler = make_assembler(system_wide=True)
        key_path = assembler.registry_key_path(PROGRAM_MENU_PATH / "Acme")
        assert key_path.root == "HKCU"

    def test_per_user_install_uses_hkcu(self):
        assembler = make_assembler(system_wide=False)
        assert assembler.registry_key_path(INSTALLDIR).root == "HKCU"

    def test_action_before_wix36(self):
        """测试 WiX 3.6 之前需要 createAndRemoveOnUninstall"""
        assert make_assembler(version="3.5").registry_key_path(INSTALLDIR).action == "createAndRemoveOnUninstall"
        assert make_assembler(version="3.6").registry_key_path(INSTALLDIR).action is None
        assert make_assembler(version="4.0").registry_key_path(INSTALLDIR).action is None


class TestRemovalMarkers:
    """目录删除标记测试"""

    def test_no_marker_for_install_root(self):
        """测试知名目录下的文件不带删除标记"""
        for system_wide in (True, False):
            assembler = make_assembler(system_wide=system_wide)
            component = assembler.get(assembler.add_file(Path("App.exe"), INSTALLDIR / "App.exe"))
            assert component.remove_folder is None
            assert not assembler.has_removal_marker(INSTALLDIR)

    def test_per_user_markers_are_distinct(self):
        """测试同一目录下 N 个组件得到 N 个不同的标记 Id"""
        assembler = make_assembler(system_wide=False)
        directory = INSTALLDIR / "app"
        ids = [
            assembler.add_file(Path(f"f{i}.jar"), directory / f"f{i}.jar")
            for i in range(4)
        ]
        markers = [assembler.get(component_id).remove_folder for component_id in ids]

        assert all(marker is not None for marker in markers)
        assert len({marker.id for marker in markers}) == 4
        assert markers[0].id == identifier(directory, Role.REMOVE_FOLDER) + "_1"
        assert markers[3].id.endswith("_4")
        assert assembler.has_removal_marker(directory)

    def test_per_machine_single_marker_per_directory(self):
        """测试全机安装下每个目录最多一个删除标记"""
        assembler = make_assembler(system_wide=True)
        directory = INSTALLDIR / "app"
        ids = [
            assembler.add_file(Path(f"f{i}.jar"), directory / f"f{i}.jar")
            for i in range(3)
        ]
        markers = [assembler.get(component_id).remove_folder for component_id in ids]

        assert markers[0] is not None
        assert markers[1:] == [None, None]

    def test_create_folder_marker_per_user_only(self):
        """测试 CreateFolder 组件只在当前用户安装时带删除标记"""
        per_user = make_assembler(system_wide=False)
        component = per_user.get(per_user.add_create_folder(INSTALLDIR / "logs"))
        assert component.remove_folder is not None

        per_machine = make_assembler(system_wide=True)
        component = per_machine.get(per_machine.add_create_folder(INSTALLDIR / "logs"))
        assert component.remove_folder is None

    def test_remove_folder_component(self):
        assembler = make_assembler(system_wide=False)
        component = assembler.get(assembler.add_remove_folder(INSTALLDIR))

        assert component.role is Role.REMOVE_FOLDER
        assert component.element_id == identifier(INSTALLDIR, Role.REMOVE_FOLDER)
        assert component.remove_folder is None
        assert component.key_path


class TestShortcuts:
    """快捷方式组件测试"""

    def test_desktop_shortcut(self):
        assembler = make_assembler(system_wide=False)
        launcher = LauncherInfo(name="App", path=INSTALLDIR / "App.exe")
        component = assembler.get(assembler.add_shortcut(launcher, ShortcutFolder.DESKTOP))

        assert component.path == DESKTOP_PATH / "App"
        assert component.directory == DESKTOP_PATH
        assert component.key_path
        assert component.registry_key_path is None
        assert component.remove_folder is None
        assert isinstance(component.payload, ShortcutPayload)
        assert component.payload.target == f"[#{identifier(INSTALLDIR / 'App.exe', Role.FILE)}]"
        assert component.payload.condition == "INSTALL_DESKTOP_SHORTCUT"

    def test_menu_shortcut_uses_group(self):
        """测试开始菜单快捷方式位于分组目录下并带删除标记"""
        assembler = make_assembler(system_wide=True)
        launcher = LauncherInfo(name="App", path=INSTALLDIR / "App.exe")
        component = assembler.get(assembler.add_shortcut(launcher, ShortcutFolder.PROGRAM_MENU))

        assert component.directory == PROGRAM_MENU_PATH / "Acme"
        assert component.registry_key_path.root == "HKCU"
        assert component.remove_folder is not None
        assert component.payload.condition == "INSTALL_STARTMENU_SHORTCUT"

    def test_disabled_folder(self):
        """测试快捷方式目录未启用"""
        assembler = make_assembler(folders=[ShortcutFolder.PROGRAM_MENU])
        launcher = LauncherInfo(name="App", path=INSTALLDIR / "App.exe")
        with pytest.raises(InvalidPathError):
            assembler.add_shortcut(launcher, ShortcutFolder.DESKTOP)

    def test_launcher_outside_install_dir(self):
        assembler = make_assembler()
        launcher = LauncherInfo(name="App", path=LOCAL_PROGRAM_FILES / "App.exe")
        with pytest.raises(InvalidPathError):
            assembler.add_shortcut(launcher, ShortcutFolder.DESKTOP)


class TestFileAssociations:
    """文件关联组件测试"""

    def test_one_component_per_extension(self):
        assembler = make_assembler()
        association = FileAssociation(
            launcher_path=INSTALLDIR / "App.exe",
            extensions=["txt", "log"],
            description="Text",
        )
        ids = assembler.add_file_association(association)

        assert len(ids) == 2
        payloads = [assembler.get(component_id).payload for component_id in ids]
        assert [p.extension for p in payloads] == ["txt", "log"]
        assert all(isinstance(p, ProgIdPayload) for p in payloads)
        assert payloads[0].verb_target == identifier(INSTALLDIR / "App.exe", Role.FILE)
        assert payloads[0].icon is None

    def test_mime_deduplication(self):
        """测试共享 MIME 类型只在第一个关联中声明"""
        assembler = make_assembler()
        first = FileAssociation(
            launcher_path=INSTALLDIR / "App.exe", extensions=["txt"], mime_types=["text/plain"]
        )
        second = FileAssociation(
            launcher_path=INSTALLDIR / "Viewer.exe", extensions=["text"], mime_types=["text/plain"]
        )
        first_payload = assembler.get(assembler.add_file_association(first)[0]).payload
        second_payload = assembler.get(assembler.add_file_association(second)[0]).payload

        assert first_payload.declare_mime
        assert not second_payload.declare_mime
        assert second_payload.content_type == "text/plain"

    def test_duplicate_extension_does_not_consume_mime(self):
        """测试重复的扩展名被跳过，其 MIME 类型留给下一个关联声明"""
        assembler = make_assembler()
        launcher = INSTALLDIR / "App.exe"
        associations = [
            FileAssociation(launcher_path=launcher, extensions=["txt"], mime_types=["text/plain"]),
            FileAssociation(launcher_path=launcher, extensions=["txt"], mime_types=["text/x-b"]),
            FileAssociation(launcher_path=launcher, extensions=["bbb"], mime_types=["text/x-b"]),
        ]
        ids = [assembler.add_file_association(association) for association in associations]

        assert ids[1] == []
        assert len(assembler.components) == 2
        declared = [
            c.payload.content_type for c in assembler.components
            if isinstance(c.payload, ProgIdPayload) and c.payload.declare_mime
        ]
        assert declared == ["text/plain", "text/x-b"]

    def test_icon_reference(self):
        assembler = make_assembler()
        association = FileAssociation(
            launcher_path=INSTALLDIR / "App.exe",
            extensions=["txt"],
            icon=INSTALLDIR / "fa_txt.ico",
            icon_source=Path("doc.ico"),
        )
        payload = assembler.get(assembler.add_file_association(association)[0]).payload
        assert payload.icon == identifier(INSTALLDIR / "fa_txt.ico", Role.FILE)


class TestServices:
    """服务组件测试"""

    def test_service_entries_attached_to_file(self):
        assembler = make_assembler()
        service = LauncherAsService(name="Agent", launcher_path=INSTALLDIR / "Agent.exe", description="d")
        component = assembler.get(assembler.add_file(
            Path("service-installer.exe"), INSTALLDIR / "service-installer.exe", [service]
        ))

        assert isinstance(component.payload, FilePayload)
        entry, = component.payload.services
        assert entry.name == "Agent"
        assert entry.arguments == f'"[#{identifier(INSTALLDIR / "Agent.exe", Role.FILE)}]"'

    def test_renamed_file(self):
        """测试安装文件名与源文件名不同时记录名称"""
        assembler = make_assembler()
        component = assembler.get(assembler.add_file(Path("winsw.exe"), INSTALLDIR / "svc.exe"))
        assert component.payload.name == "svc.exe"

    def test_service_config(self):
        assembler = make_assembler()
        service = LauncherAsService(name="Agent", launcher_path=INSTALLDIR / "Agent.exe")
        component = assembler.get(assembler.add_service_config(service))

        assert component.role is None
        assert component.directory == INSTALLDIR
        assert component.registry_key_path is not None
        assert isinstance(component.payload, ServiceConfigPayload)
        assert component.payload.service_name == "Agent"

    def test_duplicate_registry_component(self):
        assembler = make_assembler()
        assembler.add_registry_component(INSTALLDIR, "rm_rf")
        with pytest.raises(ValueError):
            assembler.add_registry_component(INSTALLDIR, "rm_rf")
