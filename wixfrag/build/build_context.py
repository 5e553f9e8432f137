"""
构建上下文模块

定义片段生成过程中的共享数据结构和异常类。
"""

from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..config.schema import FragmentConfig

if TYPE_CHECKING:
    from .directories import DirectoryTree
    from .document import WixFragment
    from .fragment import FragmentSettings
    from .launchers import FileAssociation, LauncherAsService, LauncherInfo
    from .layout import LayoutTransformer
    from .toolset import WixToolset

# 进度回调类型
ProgressCallback = Callable[[str, int, int, str], None]


class BuildError(Exception):
    """构建错误"""
    pass


@dataclass
class BuildContext:
    """构建上下文，包含一次生成过程中的共享数据"""
    config: FragmentConfig
    output_path: Path
    progress_callback: Optional[ProgressCallback] = None

    # 布局步骤产出
    toolset: Optional['WixToolset'] = None
    settings: Optional['FragmentSettings'] = None
    plan: Optional['LayoutTransformer'] = None
    launchers: List['LauncherInfo'] = field(default_factory=list)
    associations: List['FileAssociation'] = field(default_factory=list)
    services: List['LauncherAsService'] = field(default_factory=list)
    service_installer: Optional[PureWindowsPath] = None

    # 后续步骤产出
    tree: Optional['DirectoryTree'] = None
    fragment: Optional['WixFragment'] = None

    # 统计信息
    build_stats: Dict[str, Any] = None  # type: ignore

    def __post_init__(self):
        if self.build_stats is None:
            self.build_stats = {
                'start_time': 0,
                'end_time': 0,
                'total_files': 0,
                'total_directories': 0,
                'empty_directories': 0,
                'total_components': 0,
                'total_groups': 0,
            }

    def report_progress(self, stage: str, current: int, message: str = "") -> None:
        """向调用方报告进度（未设置回调时忽略）"""
        if self.progress_callback:
            self.progress_callback(stage, current, 100, message)
