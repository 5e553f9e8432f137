"""
生成管道模块

使用管道模式协调生成步骤的执行。
"""

import time
from pathlib import Path
from typing import List, Optional

from ..config.schema import FragmentConfig
from ..utils.logging import debug, error, info, success, LogStage
from .build_context import BuildContext, BuildError, ProgressCallback
from .steps.build_step import BuildStep
from .steps.directory_step import DirectoryStep
from .steps.fragment_step import FragmentStep
from .steps.layout_step import LayoutStep
from .steps.write_step import WriteStep


class BuildPipeline:
    """生成管道，负责协调生成步骤的执行"""

    def __init__(self):
        self._steps: List[BuildStep] = []
        self._init_default_steps()

    def _init_default_steps(self):
        """初始化默认的生成步骤"""
        self._steps = [
            LayoutStep(),
            DirectoryStep(),
            FragmentStep(),
            WriteStep(),
        ]

    def add_step(self, step: BuildStep, position: Optional[int] = None):
        """添加生成步骤"""
        if position is None:
            self._steps.append(step)
        else:
            self._steps.insert(position, step)

    def remove_step(self, step_name: str):
        """移除生成步骤"""
        self._steps = [step for step in self._steps if step.name != step_name]

    def get_steps(self) -> List[BuildStep]:
        """获取所有生成步骤"""
        return self._steps.copy()

    def execute(
        self,
        config: FragmentConfig,
        output_path: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BuildContext:
        """执行生成管道

        Args:
            config: 配置对象
            output_path: 输出文件路径
            progress_callback: 进度回调函数

        Returns:
            BuildContext: 生成上下文，包含所有中间结果

        Raises:
            BuildError: 生成失败
        """
        context = BuildContext(
            config=config,
            output_path=Path(output_path),
            progress_callback=progress_callback,
        )

        context.build_stats['start_time'] = time.time()

        try:
            info(f"开始生成 WiX 片段: {output_path}", stage=LogStage.INIT)
            debug(
                f"生成配置: product={config.product.name} version={config.product.version} "
                f"wix={config.wix.version} system_wide={config.install.system_wide} "
                f"launchers={len(config.launchers)}",
                stage=LogStage.INIT
            )

            for step in self._steps:
                info(f"执行步骤: {step.description}", stage=LogStage.BUILD)
                step.execute(context)

            context.build_stats['end_time'] = time.time()
            build_time = context.build_stats['end_time'] - context.build_stats['start_time']

            success(f"WiX 片段生成成功: {output_path}", stage=LogStage.DONE)
            info(f"生成时间: {build_time:.2f}秒")
            info(f"文件: {context.build_stats['total_files']}  目录: {context.build_stats['total_directories']}  "
                 f"组件: {context.build_stats['total_components']}")

            return context

        except Exception as e:
            context.build_stats['end_time'] = time.time()

            error_msg = str(e)
            error(f"生成失败: {error_msg}", stage=LogStage.BUILD)

            raise BuildError(f"生成失败: {error_msg}") from e

    def validate_pipeline(self) -> List[str]:
        """验证生成管道的完整性

        Returns:
            List[str]: 验证错误列表，空列表表示验证通过
        """
        errors = []

        if not self._steps:
            errors.append("生成管道中没有步骤")
            return errors

        # 检查步骤的进度范围是否连续
        prev_end = 0
        for step in self._steps:
            start, end = step.get_progress_range()
            if start != prev_end:
                errors.append(f"步骤 '{step.name}' 的进度范围不连续: 期望起始 {prev_end}%, 实际 {start}%")
            if start >= end:
                errors.append(f"步骤 '{step.name}' 的进度范围无效: {start}% - {end}%")
            prev_end = end

        if prev_end != 100:
            errors.append(f"生成管道的总进度范围不是100%: {prev_end}%")

        return errors
