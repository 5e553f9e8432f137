"""
Validate 命令实现

验证配置文件，并显示配置解析出的工具集、安装范围和应用镜像检查结果。
"""

import json
from pathlib import Path, PurePath
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...build.fragment import FragmentSettings
from ...build.identifiers import to_wix_path
from ...build.layout import ApplicationLayout
from ...build.toolset import UnsupportedToolsetError, WixToolset
from ...config import ConfigError, ConfigValidationError, FragmentConfig, load_config


console = Console()


def validate_command(
    config: str = typer.Option(..., "--config", "-c", help="配置文件路径"),
    json_output: bool = typer.Option(False, "--json", help="以 JSON 格式输出结果"),
) -> None:
    """验证配置文件

    检查配置文件的语法和字段，解析 WiX 工具集版本，并检查应用镜像中的启动器。

    示例:
        wixfrag validate -c app.yaml
        wixfrag validate -c app.yaml --json
    """
    config_path = Path(config)

    if not config_path.exists():
        console.print(f"[red]配置文件不存在: {config_path}[/red]")
        raise typer.Exit(1)

    if not json_output:
        console.print(f"正在验证配置文件: [cyan]{config_path}[/cyan]")

    try:
        fragment_config = load_config(config_path)
        toolset = WixToolset.parse(fragment_config.wix.version)
    except ConfigValidationError as e:
        _report_errors(config_path, e.errors, json_output)
        raise typer.Exit(1)
    except (ConfigError, UnsupportedToolsetError) as e:
        if json_output:
            console.print(json.dumps({
                "file": str(config_path),
                "error": str(e),
                "error_type": "toolset_error" if isinstance(e, UnsupportedToolsetError) else "config_error",
            }, ensure_ascii=False, indent=2))
        else:
            console.print(f"[red]配置错误: {e}[/red]")
        raise typer.Exit(1)

    settings = FragmentSettings.from_config(fragment_config, toolset)
    warnings = check_app_image(fragment_config)
    summary = _summary(fragment_config, settings)

    if json_output:
        console.print(json.dumps({
            "file": str(config_path),
            "valid": True,
            "summary": summary,
            "warnings": warnings,
        }, ensure_ascii=False, indent=2))
        return

    console.print("[green]✓ 配置文件验证通过[/green]")

    table = Table(title="生成设置")
    table.add_column("项目", style="cyan", no_wrap=True)
    table.add_column("值", style="white")
    for key, value in summary.items():
        table.add_row(key, escape(str(value)))
    console.print(table)

    for message in warnings:
        console.print(f"[yellow]⚠ {escape(message)}[/yellow]")


def check_app_image(config: FragmentConfig) -> List[str]:
    """检查应用镜像目录和启动器可执行文件，返回警告列表

    镜像可能在配置之后才构建出来，这里只提示，不作为验证失败。
    """
    app_image = Path(config.app_image)
    if not app_image.is_dir():
        return [f"应用镜像目录不存在: {app_image}"]

    launchers_dir = ApplicationLayout.platform_app_image(config.layout).resolve_at(app_image).launchers_directory
    warnings = []
    for launcher in config.launchers:
        executable = Path(launchers_dir) / f"{launcher.name}.exe"
        if not executable.is_file():
            warnings.append(f"启动器不存在: {executable}")
    if config.service_installer is not None and not Path(config.service_installer.source).is_file():
        warnings.append(f"服务安装工具不存在: {config.service_installer.source}")
    return warnings


def _summary(config: FragmentConfig, settings: FragmentSettings) -> Dict[str, Any]:
    toolset = settings.toolset
    folders = [folder.property_name for folder in settings.shortcut_folders]
    return {
        "产品": f"{config.product.name} {config.product.version}",
        "WiX 工具集": f"{toolset.version_string} ({toolset.type.value})",
        "卸载时递归删除目录": "RemoveFolderEx" if toolset.with_wix36_features else "RemoveFolder",
        "安装范围": "全机 (HKLM)" if settings.system_wide else "当前用户 (HKCU)",
        "安装目录": to_wix_path(settings.install_root),
        "注册表键": settings.registry_key,
        "快捷方式": ", ".join(folders) or "-",
        "启动器": len(config.launchers),
        "文件关联": len(config.file_associations),
        "服务": sum(1 for launcher in config.launchers if launcher.service),
    }


def _report_errors(config_path: PurePath, errors: List[Dict[str, Any]], json_output: bool) -> None:
    if json_output:
        console.print(json.dumps({
            "file": str(config_path),
            "errors": errors,
            "error_count": len(errors),
        }, ensure_ascii=False, indent=2, default=str))
        return

    console.print(f"[red]配置文件验证失败 ({len(errors)} 个错误):[/red]")
    console.print()

    table = Table(title="验证错误")
    table.add_column("位置", style="cyan", no_wrap=True)
    table.add_column("错误信息", style="red")
    table.add_column("输入值", style="yellow")

    for error in errors:
        location = " -> ".join(str(item) for item in error.get('loc', []))
        input_value = str(error.get('input', ''))
        if len(input_value) > 47:
            input_value = input_value[:47] + "..."
        table.add_row(location or "根级别", error.get('msg', '未知错误'), input_value or "-")

    console.print(table)
