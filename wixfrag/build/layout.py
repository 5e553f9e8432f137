"""
应用布局与布局转换

ApplicationLayout 把逻辑槽位（启动器目录、应用目录、运行时目录……）映射到路径。
源布局映射到构建机上的真实目录，安装布局映射到以 INSTALLDIR 为根的安装期路径。

LayoutTransformer 并行遍历两个布局，产出两类事件：
CopyFile(src, dst) 和 EnsureDirectory(path)。事件序列是惰性、有限、可重复迭代的；
第一次完整迭代后结果被缓存，之后的消费者不再重新遍历文件系统。
"""

import fnmatch
from dataclasses import dataclass
from pathlib import Path, PurePath, PureWindowsPath
from typing import Dict, Hashable, Iterable, Iterator, List, Optional, Protocol, Union

from ..config.schema import LayoutModel
from ..utils.logging import layout_logger
from .build_context import BuildError


class LayoutSlot:
    """标准布局槽位"""
    LAUNCHERS = "launchers"
    APP = "app"
    RUNTIME = "runtime"
    DESKTOP_INTEGRATION = "desktop_integration"


@dataclass(frozen=True)
class CopyFile:
    """复制文件事件"""
    src: Path
    dst: PureWindowsPath


@dataclass(frozen=True)
class EnsureDirectory:
    """确保目录存在事件"""
    path: PureWindowsPath


LayoutEvent = Union[CopyFile, EnsureDirectory]


class TransformHandler(Protocol):
    """推送式事件处理接口"""

    def copy_file(self, src: Path, dst: PureWindowsPath) -> None: ...

    def create_directory(self, path: PureWindowsPath) -> None: ...


class ApplicationLayout:
    """槽位到路径的映射"""

    def __init__(self, paths: Optional[Dict[Hashable, PurePath]] = None):
        self._paths: Dict[Hashable, PurePath] = dict(paths or {})

    @classmethod
    def platform_app_image(cls, layout: Optional[LayoutModel] = None) -> 'ApplicationLayout':
        """Windows 应用镜像的相对布局"""
        layout = layout or LayoutModel()
        return cls({
            LayoutSlot.LAUNCHERS: PurePath(layout.launchers),
            LayoutSlot.APP: PurePath(layout.app),
            LayoutSlot.RUNTIME: PurePath(layout.runtime),
            LayoutSlot.DESKTOP_INTEGRATION: PurePath(layout.desktop_integration),
        })

    def resolve_at(self, root: PurePath) -> 'ApplicationLayout':
        """以 root 为根解析所有相对槽位路径，返回新布局"""
        resolved = {}
        for key, path in self._paths.items():
            resolved[key] = root.joinpath(*path.parts) if path.parts else root
        return ApplicationLayout(resolved)

    def keys(self) -> List[Hashable]:
        return list(self._paths)

    def path(self, key: Hashable) -> PurePath:
        return self._paths[key]

    def set_path(self, key: Hashable, path: PurePath) -> 'ApplicationLayout':
        self._paths[key] = path
        return self

    def __contains__(self, key: Hashable) -> bool:
        return key in self._paths

    @property
    def launchers_directory(self) -> PurePath:
        return self._paths[LayoutSlot.LAUNCHERS]

    @property
    def app_directory(self) -> PurePath:
        return self._paths[LayoutSlot.APP]

    @property
    def runtime_directory(self) -> PurePath:
        return self._paths[LayoutSlot.RUNTIME]

    @property
    def desktop_integration_directory(self) -> PurePath:
        return self._paths[LayoutSlot.DESKTOP_INTEGRATION]

    def transform(
        self,
        other: 'ApplicationLayout',
        handler: Optional[TransformHandler] = None,
        exclude: Optional[List[str]] = None,
    ) -> 'LayoutTransformer':
        """创建到 other 布局的转换；给出 handler 时立即把所有事件推送给它"""
        transformer = LayoutTransformer(self, other, exclude)
        if handler is not None:
            transformer.dispatch(handler)
        return transformer


def match_pattern(path: str, pattern: str) -> bool:
    """匹配单个排除模式

    Args:
        path: 使用正斜杠的相对路径
        pattern: glob 模式；以 / 结尾表示目录及其全部内容，含 / 时按路径段匹配
    """
    pattern = pattern.replace('\\', '/')

    if fnmatch.fnmatch(path, pattern):
        return True

    # 目录模式
    if pattern.endswith('/'):
        dir_pattern = pattern.rstrip('/')
        if fnmatch.fnmatch(path, dir_pattern) or path.startswith(dir_pattern + '/'):
            return True

    # 扩展名模式
    if pattern.startswith('*.') and path.endswith(pattern[1:]):
        return True

    # 路径片段模式
    if '/' in pattern.rstrip('/'):
        path_parts = path.split('/')
        pattern_parts = pattern.rstrip('/').split('/')
        for i in range(len(path_parts) - len(pattern_parts) + 1):
            if all(
                fnmatch.fnmatch(path_parts[i + j], pattern_parts[j])
                for j in range(len(pattern_parts))
            ):
                return True

    return False


class LayoutTransformer:
    """源布局到安装布局的转换事件序列"""

    def __init__(
        self,
        source: ApplicationLayout,
        install: ApplicationLayout,
        exclude: Optional[List[str]] = None,
    ):
        self.source = source
        self.install = install
        self.exclude = list(exclude or [])
        self._events: Optional[List[LayoutEvent]] = None

    def __iter__(self) -> Iterator[LayoutEvent]:
        if self._events is not None:
            return iter(self._events)
        return self._generate()

    def _generate(self) -> Iterator[LayoutEvent]:
        events: List[LayoutEvent] = []
        for event in self._walk():
            events.append(event)
            yield event
        self._events = events
        layout_logger.debug(f"布局事件已缓存: {len(events)} 个")

    def events(self) -> List[LayoutEvent]:
        """完整的事件列表"""
        return list(self)

    def copy_operations(self) -> List[CopyFile]:
        return [event for event in self if isinstance(event, CopyFile)]

    def dispatch(self, handler: TransformHandler) -> None:
        """把事件推送给 handler"""
        for event in self:
            if isinstance(event, CopyFile):
                handler.copy_file(event.src, event.dst)
            else:
                handler.create_directory(event.path)

    def _slot_pairs(self) -> List[tuple]:
        pairs = []
        seen_sources = set()
        for key in self.source.keys():
            if key not in self.install:
                raise BuildError(f"安装布局缺少槽位: {key}")
            src = Path(self.source.path(key))
            if src in seen_sources:
                continue
            seen_sources.add(src)
            pairs.append((src, PureWindowsPath(self.install.path(key))))
        return pairs

    def _walk(self) -> Iterator[LayoutEvent]:
        pairs = self._slot_pairs()
        dir_roots = [src for src, _ in pairs if src.is_dir()]

        for src, dst in pairs:
            if not src.exists():
                continue

            if not src.is_dir():
                if not self._is_excluded(src.name):
                    yield CopyFile(src, dst)
                continue

            # 嵌套在当前槽位中的其他目录槽位由它们自己负责
            nested = {root for root in dir_roots if root != src and src in root.parents}
            # 排除模式相对于包含该槽位的最外层槽位目录匹配
            outer = [root for root in dir_roots if root == src or root in src.parents]
            match_base = min(outer, key=lambda root: len(root.parts))
            yield EnsureDirectory(dst)
            yield from self._walk_directory(src, src, dst, nested, match_base)

    def _walk_directory(
        self,
        base: Path,
        directory: Path,
        dst_base: PureWindowsPath,
        nested: Iterable[Path],
        match_base: Path,
    ) -> Iterator[LayoutEvent]:
        for item in sorted(directory.iterdir(), key=lambda p: p.name):
            if item in nested:
                continue

            relative = item.relative_to(base)
            if self._is_excluded(item.relative_to(match_base).as_posix()):
                continue

            dst = dst_base.joinpath(*relative.parts)
            if item.is_dir():
                yield EnsureDirectory(dst)
                yield from self._walk_directory(base, item, dst_base, nested, match_base)
            else:
                yield CopyFile(item, dst)

    def _is_excluded(self, relative_path: str) -> bool:
        return any(match_pattern(relative_path, pattern) for pattern in self.exclude)
