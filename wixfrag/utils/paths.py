"""
路径工具

安装期路径统一使用 PureWindowsPath 表示：分隔符固定为反斜杠，比较不区分大小写，
因此在任何主机上生成的标识符都一致。
"""

from pathlib import Path, PurePath, PureWindowsPath
from typing import Optional, Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """确保目录存在"""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def to_install_path(path: Union[str, PurePath]) -> PureWindowsPath:
    """转换为安装期路径（PureWindowsPath）"""
    if isinstance(path, PurePath):
        return PureWindowsPath(*path.parts)
    return PureWindowsPath(path.replace('/', '\\'))


def parent_or_none(path: PurePath) -> Optional[PurePath]:
    """返回父路径；单段路径没有父路径，返回 None

    PurePath("INSTALLDIR").parent 是 "."，这里不把 "." 当作父目录。
    """
    if len(path.parts) <= 1:
        return None
    return path.parent


def starts_with(path: PurePath, prefix: PurePath) -> bool:
    """判断 path 是否等于 prefix 或位于 prefix 之下（按路径段比较）"""
    return path == prefix or prefix in path.parents


def strip_suffix(name: str) -> str:
    """去掉文件名的最后一个后缀"""
    stem, dot, _ = name.rpartition('.')
    return stem if dot and stem else name


def format_size(size_bytes: int) -> str:
    """格式化文件大小"""
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"
