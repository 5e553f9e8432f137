"""
Ids 命令实现

计算安装期路径在各角色下的标识符和 GUID，便于排查生成结果。
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ...build.identifiers import COMPONENT_ROLES, InvalidPathError, Role, guid, identifier


console = Console()


def ids_command(
    path: str = typer.Argument(..., help="安装期路径，例如 INSTALLDIR\\app\\main.jar"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="只显示指定角色（File、Shortcut、ProgId 等）"),
) -> None:
    """计算标识符

    示例:
        wixfrag ids "INSTALLDIR\\App.exe"
        wixfrag ids "INSTALLDIR\\app" --role Folder
    """
    try:
        roles = [Role.from_name(role)] if role else list(Role)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=path)
    table.add_column("角色", style="cyan")
    table.add_column("标识符", style="green")
    table.add_column("GUID", style="yellow")

    try:
        for current in roles:
            component_guid = guid(path, current) if current in COMPONENT_ROLES else "-"
            table.add_row(current.tag, identifier(path, current), component_guid)
    except InvalidPathError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(table)
