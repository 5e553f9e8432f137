"""
目录树构建

消费布局事件，计算安装期必须声明的全部目录，以及其中没有任何文件的空目录。
空目录需要单独的 CreateFolder 组件才能被安装程序创建。
"""

from dataclasses import dataclass
from pathlib import Path, PurePath, PureWindowsPath
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from ..utils.logging import dirs_logger
from ..utils.paths import parent_or_none
from .identifiers import KNOWN_DIRS, InvalidPathError, require_root_path
from .layout import CopyFile, EnsureDirectory, LayoutEvent


def directory_sort_key(path: PureWindowsPath) -> Tuple[int, str]:
    """目录排序键：先按深度，再按小写路径"""
    return len(path.parts), str(path).lower()


@dataclass(frozen=True)
class DirectoryNode:
    """目录树节点，parent 只是对父目录路径的引用"""
    path: PureWindowsPath
    parent: Optional[PureWindowsPath]
    is_well_known: bool
    is_empty: bool


class DirectoryTree:
    """目录树构建结果"""

    def __init__(self, all_dirs: Iterable[PureWindowsPath], empty_dirs: Iterable[PureWindowsPath]):
        self._all_dirs: FrozenSet[PureWindowsPath] = frozenset(all_dirs)
        self._empty_dirs: FrozenSet[PureWindowsPath] = frozenset(empty_dirs)

    @property
    def all_dirs(self) -> FrozenSet[PureWindowsPath]:
        return self._all_dirs

    @property
    def empty_dirs(self) -> FrozenSet[PureWindowsPath]:
        return self._empty_dirs

    def sorted_dirs(self) -> List[PureWindowsPath]:
        return sorted(self._all_dirs, key=directory_sort_key)

    def sorted_empty_dirs(self) -> List[PureWindowsPath]:
        return sorted(self._empty_dirs, key=directory_sort_key)

    def ancestors(self, path: Union[str, PurePath]) -> List[PureWindowsPath]:
        """从父目录到根目录的祖先链（不含 path 本身）"""
        directory = require_root_path(path)
        chain = []
        current = parent_or_none(directory)
        while current is not None:
            chain.append(current)
            current = parent_or_none(current)
        return chain

    def node(self, path: Union[str, PurePath]) -> DirectoryNode:
        directory = require_root_path(path)
        if directory not in self._all_dirs:
            raise KeyError(str(directory))
        return DirectoryNode(
            path=directory,
            parent=parent_or_none(directory),
            is_well_known=directory in KNOWN_DIRS,
            is_empty=directory in self._empty_dirs,
        )

    def nodes(self) -> List[DirectoryNode]:
        return [self.node(directory) for directory in self.sorted_dirs()]

    def __contains__(self, path: object) -> bool:
        return path in self._all_dirs

    def __len__(self) -> int:
        return len(self._all_dirs)


class DirectoryTreeBuilder:
    """目录树构建器

    可以直接作为布局转换的处理器使用（copy_file / create_directory），
    也可以通过 consume() 消费事件序列。事件顺序不影响结果。
    """

    def __init__(self):
        self._all_dirs: Set[PureWindowsPath] = set()
        self._empty_dirs: Set[PureWindowsPath] = set()

    def ensure_directory(self, path: Union[str, PurePath]) -> PureWindowsPath:
        directory = require_root_path(path)

        if directory not in self._all_dirs:
            self._empty_dirs.add(directory)
            current = directory
            while current is not None and current not in self._all_dirs:
                self._all_dirs.add(current)
                current = parent_or_none(current)

        # 有子目录的目录不再是空目录
        current = parent_or_none(directory)
        while current is not None:
            self._empty_dirs.discard(current)
            current = parent_or_none(current)

        return directory

    create_directory = ensure_directory

    def copy_file(self, src: Path, dst: Union[str, PurePath]) -> PureWindowsPath:
        destination = require_root_path(dst)
        parent = parent_or_none(destination)
        if parent is None:
            raise InvalidPathError(dst, "文件目标路径缺少所属目录")

        self.ensure_directory(parent)
        self._empty_dirs.discard(parent)
        return parent

    def consume(self, events: Iterable[LayoutEvent]) -> 'DirectoryTreeBuilder':
        for event in events:
            if isinstance(event, CopyFile):
                self.copy_file(event.src, event.dst)
            elif isinstance(event, EnsureDirectory):
                self.ensure_directory(event.path)
            else:
                raise TypeError(f"未知的布局事件: {event!r}")
        return self

    def build(self) -> DirectoryTree:
        dirs_logger.debug(f"目录 {len(self._all_dirs)} 个，其中空目录 {len(self._empty_dirs)} 个")
        return DirectoryTree(self._all_dirs, self._empty_dirs)
