"""
wixfrag - 从应用镜像布局生成 WiX 安装片段

Generates WiX installer fragments (directories, components, component groups)
from an application image layout.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.schema import FragmentConfig
from .build.builder import Builder

__all__ = ["FragmentConfig", "Builder", "__version__"]
