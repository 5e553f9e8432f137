"""
写入步骤模块

把片段序列化为 .wxs 文件。
"""

from ...utils import format_size
from ...utils.logging import error, info, success, LogStage
from ..build_context import BuildContext, BuildError
from ..writer import FragmentWriter
from .build_step import BuildStep


class WriteStep(BuildStep):
    """写入步骤"""

    def __init__(self):
        super().__init__("write", "写入 WiX 源文件")

    def get_progress_range(self) -> tuple[int, int]:
        return (85, 100)

    def execute(self, context: BuildContext) -> None:
        if context.fragment is None:
            raise BuildError("缺少片段数据")

        info(f"写入片段: {context.output_path}", stage=LogStage.WRITE)

        try:
            progress_start, progress_end = self.get_progress_range()
            context.report_progress("写入文件", progress_start, "序列化 XML...")

            FragmentWriter(context.fragment).write(context.output_path)

            final_size = context.output_path.stat().st_size
            context.report_progress("写入文件", progress_end, f"完成，大小 {format_size(final_size)}")

            success(f"片段写入完成 - 大小: {format_size(final_size)}", stage=LogStage.WRITE)

        except Exception as e:
            error(f"写入片段失败: {e}", stage=LogStage.WRITE)
            raise BuildError(f"写入片段失败: {e}") from e
