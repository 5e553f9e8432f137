"""
wixfrag CLI 主入口

提供命令行接口，支持 build/validate/ids/example/info 等命令。
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..utils import configure_logging
from .commands import build, example, ids, validate


# 创建主应用
app = typer.Typer(
    name="wixfrag",
    help="wixfrag - 从应用镜像布局生成 WiX 安装片段",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# 控制台输出
console = Console()


def version_callback(value: bool) -> None:
    """显示版本信息"""
    if value:
        console.print(f"wixfrag v{__version__}")
        raise typer.Exit()


def verbose_callback(verbose: bool) -> None:
    """配置详细输出"""
    configure_logging(level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="显示版本信息"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        callback=verbose_callback,
        help="启用详细输出"
    )
) -> None:
    """wixfrag - 从应用镜像布局生成 WiX 安装片段

    使用 --help 查看可用命令的详细信息。
    """
    pass


# 注册子命令
app.command("build", help="生成 WiX 片段")(build.build_command)
app.command("validate", help="验证配置文件")(validate.validate_command)
app.command("ids", help="计算安装路径的标识符和 GUID")(ids.ids_command)
app.command("example", help="生成示例配置文件")(example.example_command)


@app.command("info")
def info_command() -> None:
    """显示系统信息"""
    from ..build.toolset import NAMESPACES, WixToolsetType

    console.print("[bold]wixfrag 系统信息[/bold]")
    console.print()

    table = Table(title="版本信息")
    table.add_column("组件", style="cyan")
    table.add_column("版本", style="green")

    table.add_row("wixfrag", __version__)
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")

    console.print(table)
    console.print()

    toolset_table = Table(title="支持的 WiX 语法")
    toolset_table.add_column("语法", style="cyan")
    toolset_table.add_column("版本", style="green")
    toolset_table.add_column("命名空间", style="yellow")

    versions = {
        WixToolsetType.WIX3: "3.x（3.6 起支持 RemoveFolderEx）",
        WixToolsetType.WIX4: "4.x 及以上（StandardDirectory）",
    }
    for toolset_type, (namespace, _) in NAMESPACES.items():
        toolset_table.add_row(toolset_type.value, versions[toolset_type], namespace)

    console.print(toolset_table)


if __name__ == "__main__":
    app()
