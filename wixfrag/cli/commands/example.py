"""
Example 命令实现

生成示例配置文件。
"""

import typer
from rich.console import Console

from ...config import save_config, ConfigError
from ...config.schema import (
    FileAssociationModel,
    FragmentConfig,
    InstallModel,
    LauncherModel,
    ProductModel,
    ShortcutsModel,
)


console = Console()


def example_command(
    output: str = typer.Option(
        "example_config.yaml",
        "--output", "-o",
        help="输出配置文件路径"
    )
) -> None:
    """生成示例配置文件"""
    config = FragmentConfig(
        product=ProductModel(
            name="ExampleApp",
            vendor="Example Corp",
            version="1.0.0",
            description="示例应用程序"
        ),
        app_image="./build/image/ExampleApp",
        install=InstallModel(system_wide=True, menu_group="Example Corp"),
        shortcuts=ShortcutsModel(start_menu=True, desktop=True),
        launchers=[LauncherModel(name="ExampleApp")],
        file_associations=[
            FileAssociationModel(
                launcher="ExampleApp",
                extensions=["exd"],
                description="Example 文档",
                mime_types=["application/x-example"],
            )
        ],
        exclude=["*.pdb", "*.log", "__pycache__/"]
    )

    try:
        save_config(config, output)
    except ConfigError as e:
        console.print(f"[red]生成示例配置失败: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"✓ 示例配置文件已生成: [green]{output}[/green]")
    console.print("请根据需要修改配置文件，然后运行:")
    console.print(f"  [cyan]wixfrag build -c {output} -o AppFiles.wxs[/cyan]")
