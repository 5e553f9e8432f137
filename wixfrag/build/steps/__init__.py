"""片段生成步骤"""

from .build_step import BuildStep
from .layout_step import LayoutStep
from .directory_step import DirectoryStep
from .fragment_step import FragmentStep
from .write_step import WriteStep

__all__ = [
    "BuildStep",
    "LayoutStep",
    "DirectoryStep",
    "FragmentStep",
    "WriteStep",
]
