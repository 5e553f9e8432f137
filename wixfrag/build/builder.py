"""
生成器主类

负责整个生成流程的协调，使用管道模式组织生成步骤。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.schema import FragmentConfig
from .build_context import BuildError, ProgressCallback
from .build_pipeline import BuildPipeline
from .document import WixFragment


@dataclass
class BuildResult:
    """生成结果"""
    success: bool
    output_path: Optional[Path] = None
    output_size: Optional[int] = None
    build_time: Optional[float] = None
    fragment: Optional[WixFragment] = None
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class Builder:
    """WiX 片段生成器

    使用管道模式协调生成步骤，提供统一的生成接口。
    """

    def __init__(self):
        self.pipeline = BuildPipeline()

    def generate(
        self,
        config: FragmentConfig,
        output_path: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BuildResult:
        """生成 WiX 片段

        Args:
            config: 配置对象
            output_path: 输出 .wxs 文件路径
            progress_callback: 进度回调函数

        Returns:
            BuildResult: 生成结果，失败时 success 为 False 并带有错误信息
        """
        output_path = Path(output_path)
        try:
            context = self.pipeline.execute(config, output_path, progress_callback)

            build_time = context.build_stats['end_time'] - context.build_stats['start_time']

            return BuildResult(
                success=True,
                output_path=output_path,
                output_size=output_path.stat().st_size if output_path.exists() else None,
                build_time=build_time,
                fragment=context.fragment,
                stats=dict(context.build_stats),
            )

        except BuildError as e:
            return BuildResult(
                success=False,
                error=str(e)
            )

    def get_pipeline(self) -> BuildPipeline:
        """获取生成管道，用于自定义生成流程"""
        return self.pipeline

    def validate_build_pipeline(self) -> List[str]:
        """验证生成管道的完整性"""
        return self.pipeline.validate_pipeline()
