"""
目录树步骤模块

由布局事件计算需要声明的目录和空目录。
"""

from ...utils.logging import debug, error, info, success, LogStage
from ..build_context import BuildContext, BuildError
from ..directories import DirectoryTreeBuilder
from .build_step import BuildStep


class DirectoryStep(BuildStep):
    """目录树步骤"""

    def __init__(self):
        super().__init__("directories", "构建目录树")

    def get_progress_range(self) -> tuple[int, int]:
        return (25, 45)

    def execute(self, context: BuildContext) -> None:
        if context.plan is None:
            raise BuildError("缺少布局转换结果")

        info("构建目录树", stage=LogStage.DIRS)

        try:
            progress_start, progress_end = self.get_progress_range()
            context.report_progress("构建目录树", progress_start, "计算目录...")

            context.tree = DirectoryTreeBuilder().consume(context.plan).build()

            context.build_stats['total_directories'] = len(context.tree.all_dirs)
            context.build_stats['empty_directories'] = len(context.tree.empty_dirs)

            context.report_progress("构建目录树", progress_end, f"{len(context.tree.all_dirs)} 个目录")

            success("目录树构建完成", stage=LogStage.DIRS)
            info(f"  目录数量: {len(context.tree.all_dirs)}")
            info(f"  空目录: {len(context.tree.empty_dirs)}")
            for directory in context.tree.sorted_empty_dirs():
                debug(f"空目录: {directory}", stage=LogStage.DIRS)

        except Exception as e:
            error(f"目录树构建失败: {e}", stage=LogStage.DIRS)
            raise BuildError(f"目录树构建失败: {e}") from e
