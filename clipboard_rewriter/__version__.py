"""
版本信息管理模块
提供统一的版本信息管理，避免硬编码版本号
"""

__version__ = "1.2.0"
__version_info__ = (1, 2, 0)

# 项目元数据
PROJECT_NAME = "clipboard-rewriter"
PROJECT_DESCRIPTION = "剪贴板监控与正则规则自动替换工具"
AUTHOR = "Clipboard Rewriter Team"
LICENSE = "MIT"

# 版本类型标识
VERSION_TYPE = "stable"  # stable, beta, alpha, rc


def get_version_string():
    """获取版本字符串"""
    version = __version__
    if VERSION_TYPE != "stable":
        version += f"-{VERSION_TYPE}"
    return version


def get_version_info():
    """获取版本信息字典"""
    return {
        "version": __version__,
        "version_info": __version_info__,
        "type": VERSION_TYPE,
        "string": get_version_string(),
        "name": PROJECT_NAME,
        "description": PROJECT_DESCRIPTION
    }


__all__ = [
    "__version__",
    "__version_info__",
    "PROJECT_NAME",
    "PROJECT_DESCRIPTION",
    "AUTHOR",
    "VERSION_TYPE",
    "get_version_string",
    "get_version_info",
]
