"""通用工具模块"""

from .logging import (
    configure_logging,
    get_stage_logger,
    StageLogger,
    LogStage,
    OutputLevel,
    layout_logger,
    dirs_logger,
    components_logger,
    fragment_logger,
    write_logger,
)

from .paths import (
    ensure_directory,
    to_install_path,
    parent_or_none,
    starts_with,
    strip_suffix,
    format_size,
)

__all__ = [
    # 日志相关
    "configure_logging",
    "get_stage_logger",
    "StageLogger",
    "LogStage",
    "OutputLevel",
    "layout_logger",
    "dirs_logger",
    "components_logger",
    "fragment_logger",
    "write_logger",

    # 路径相关
    "ensure_directory",
    "to_install_path",
    "parent_or_none",
    "starts_with",
    "strip_suffix",
    "format_size",
]
