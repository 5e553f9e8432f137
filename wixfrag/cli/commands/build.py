"""
Build 命令实现

从配置文件生成 WiX 片段。
"""

import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ...config import load_config, ConfigError, ConfigValidationError
from ...utils.logging import set_log_level, set_log_file, OutputLevel


console = Console()


def build_command(
    config: str = typer.Option(..., "--config", "-c", help="配置文件路径"),
    output: str = typer.Option(..., "--output", "-o", help="输出 .wxs 文件路径"),
    wix_version: Optional[str] = typer.Option(None, "--wix-version", help="覆盖配置中的 WiX 版本"),
    force: bool = typer.Option(False, "--force", "-f", help="强制覆盖已存在的输出文件"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="日志输出文件"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细调试日志 (DEBUG 级别)"),
) -> None:
    """生成 WiX 片段

    示例:
        wixfrag build -c app.yaml -o AppFiles.wxs
        wixfrag build -c app.yaml -o AppFiles.wxs --wix-version 4.0
    """
    from ...build.builder import Builder

    config_path = Path(config)
    output_path = Path(output)

    set_log_level(OutputLevel.DEBUG if verbose else OutputLevel.INFO)

    if log_file:
        try:
            set_log_file(log_file)
        except OSError:
            console.print(f"[yellow]无法写入日志文件: {log_file}[/yellow]")

    if output_path.exists() and not force:
        console.print(f"[red]输出文件已存在: {output_path}[/red]")
        console.print("使用 --force 参数强制覆盖")
        raise typer.Exit(1)

    try:
        console.print(f"[cyan]正在加载配置文件[/cyan]: {config_path}")
        config_obj = load_config(config_path)

        if wix_version:
            config_obj.wix.version = wix_version

    except ConfigValidationError as e:
        console.print("[red]配置验证失败:[/red]")
        console.print(e.format_errors())
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]配置错误[/red]: {e}")
        raise typer.Exit(1)

    def progress_callback(stage: str, current: int, total: int, message: str = "") -> None:
        """进度回调函数，显示进度"""
        if total > 0:
            percentage = (current / total) * 100
            if message:
                console.print(f"[blue]{stage}[/blue]: {message} ({percentage:.0f}%)")
            else:
                console.print(f"[blue]{stage}[/blue]: {percentage:.0f}%")

    console.print("[cyan]开始生成 WiX 片段...[/cyan]")
    try:
        result = Builder().generate(config_obj, output_path, progress_callback=progress_callback)
    except Exception as e:
        console.print(f"[red]✗ 生成过程中发生意外错误[/red]: {e}")
        if log_file:
            console.print(f"[yellow]详细错误信息:[/yellow]\n{traceback.format_exc()}")
        raise typer.Exit(1)

    if not result.success:
        console.print(f"[red]✗ 生成失败[/red]: {result.error}")
        if log_file:
            console.print(f"[yellow]请检查日志文件 {log_file} 获取详细信息。[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]✓ WiX 片段生成完成[/green]: {output_path}")
    console.print(f"[blue]组件数量[/blue]: {result.stats.get('total_components', 0)}")
    console.print(f"[blue]目录数量[/blue]: {result.stats.get('total_directories', 0)}")
