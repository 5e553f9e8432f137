"""
片段装配步骤模块

装配组件、组件组、目录声明、属性和图标。
"""

from ...utils.logging import error, info, success, LogStage
from ..build_context import BuildContext, BuildError
from ..fragment import FragmentAssembler
from .build_step import BuildStep


class FragmentStep(BuildStep):
    """片段装配步骤"""

    def __init__(self):
        super().__init__("fragment", "装配 WiX 片段")

    def get_progress_range(self) -> tuple[int, int]:
        return (45, 85)

    def execute(self, context: BuildContext) -> None:
        if context.plan is None or context.tree is None or context.settings is None:
            raise BuildError("缺少布局或目录树数据")

        info("装配组件", stage=LogStage.FRAGMENT)

        try:
            progress_start, progress_end = self.get_progress_range()
            context.report_progress("装配片段", progress_start, "生成组件...")

            assembler = FragmentAssembler(context.settings)
            context.fragment = assembler.assemble(
                context.plan,
                context.tree,
                launchers=context.launchers,
                associations=context.associations,
                services=context.services,
                service_installer=context.service_installer,
            )

            stats = context.fragment.get_stats()
            context.build_stats['total_components'] = stats['components']
            context.build_stats['total_groups'] = stats['groups']

            context.report_progress("装配片段", progress_end, f"{stats['components']} 个组件")

            success("片段装配完成", stage=LogStage.FRAGMENT)
            for group in context.fragment.groups:
                info(f"  {group.id}: {len(group)} 个组件")
            info(f"  图标: {stats['icons']}")

        except Exception as e:
            error(f"片段装配失败: {e}", stage=LogStage.FRAGMENT)
            raise BuildError(f"片段装配失败: {e}") from e
