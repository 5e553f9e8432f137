"""
布局步骤模块

解析工具集版本和片段设置，建立源布局与安装布局，生成布局转换事件。
"""

from pathlib import Path, PureWindowsPath

from ...utils.logging import debug, error, info, success, warning, LogStage
from ..build_context import BuildContext, BuildError
from ..fragment import FragmentSettings
from ..identifiers import INSTALLDIR
from ..launchers import FileAssociation, LauncherAsService, LauncherInfo
from ..layout import ApplicationLayout, CopyFile
from ..toolset import WixToolset
from .build_step import BuildStep

SERVICE_INSTALLER_SLOT = "service_installer"


class LayoutStep(BuildStep):
    """布局步骤"""

    def __init__(self):
        super().__init__("layout", "解析应用布局")

    def get_progress_range(self) -> tuple[int, int]:
        return (0, 25)

    def execute(self, context: BuildContext) -> None:
        """建立布局转换"""
        config = context.config
        info(f"解析应用镜像: {config.app_image}", stage=LogStage.LAYOUT)

        try:
            progress_start, progress_end = self.get_progress_range()
            context.report_progress("解析布局", progress_start, "解析工具集版本...")

            # 不支持的工具集版本在遍历文件之前报错
            context.toolset = WixToolset.parse(config.wix.version)
            context.settings = FragmentSettings.from_config(config, context.toolset)
            debug(
                f"工具集: WiX {context.toolset.version_string} ({context.toolset.type.value}) "
                f"system_wide={context.settings.system_wide} install_root={context.settings.install_root}",
                stage=LogStage.LAYOUT
            )

            app_image = Path(config.app_image)
            if not app_image.is_dir():
                raise BuildError(f"应用镜像目录不存在: {app_image}")

            relative = ApplicationLayout.platform_app_image(config.layout)
            source = relative.resolve_at(app_image)
            install = relative.resolve_at(INSTALLDIR)

            launchers_dir = PureWindowsPath(install.launchers_directory)
            integration_dir = PureWindowsPath(install.desktop_integration_directory)

            context.launchers = [
                LauncherInfo.from_model(model, launchers_dir) for model in config.launchers
            ]

            # 文件关联：丢弃没有扩展名的关联，图标作为额外槽位加入布局
            for index, model in enumerate(config.file_associations):
                association = FileAssociation.from_model(model, launchers_dir, integration_dir)
                if not association.extensions:
                    warning(f"文件关联没有有效的扩展名，已忽略: {model.launcher}", stage=LogStage.LAYOUT)
                    continue
                if model.icon is not None and association.icon is None:
                    warning(f"文件关联图标不存在，已忽略: {model.icon}", stage=LogStage.LAYOUT)
                if association.icon is not None:
                    key = f"fa_icon_{index}"
                    source.set_path(key, association.icon_source)
                    install.set_path(key, association.icon)
                context.associations.append(association)

            context.services = [
                LauncherAsService.from_launcher(launcher)
                for launcher in context.launchers if launcher.service
            ]
            if context.services:
                installer = config.service_installer
                if installer is None:
                    raise BuildError("存在以服务方式运行的启动器，但未配置 service_installer")
                installer_source = Path(installer.source)
                if not installer_source.is_file():
                    raise BuildError(f"服务安装工具不存在: {installer_source}")

                context.service_installer = launchers_dir / (installer.install_name or installer_source.name)
                source.set_path(SERVICE_INSTALLER_SLOT, installer_source.absolute())
                install.set_path(SERVICE_INSTALLER_SLOT, context.service_installer)

            context.plan = source.transform(install, exclude=config.exclude)

            # 完整迭代一次，后续步骤直接使用缓存的事件
            events = context.plan.events()
            copies = [event for event in events if isinstance(event, CopyFile)]
            context.build_stats['total_files'] = len(copies)

            context.report_progress("解析布局", progress_end, f"找到 {len(copies)} 个文件")

            success("布局解析完成", stage=LogStage.LAYOUT)
            info(f"  文件数量: {len(copies)}")
            info(f"  启动器: {len(context.launchers)}  文件关联: {len(context.associations)}  服务: {len(context.services)}")

            for idx, copy in enumerate(copies[:20]):
                debug(f"文件[{idx}]: {copy.dst} <- {copy.src}", stage=LogStage.LAYOUT)
            if len(copies) > 20:
                debug(f"... 还有 {len(copies) - 20} 个文件未列出", stage=LogStage.LAYOUT)

        except Exception as e:
            error(f"布局解析失败: {e}", stage=LogStage.LAYOUT)
            raise BuildError(f"布局解析失败: {e}") from e
