"""
统一异常处理模块

定义项目中使用的各种异常类型，区分配置错误、规则错误和剪贴板I/O错误。
"""

from typing import Optional, Any, Dict


class ClipboardRewriterError(Exception):
    """项目基础异常类"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details
        self.error_code = None

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式，便于日志记录"""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "details": self.details,
            "error_code": self.error_code,
        }


class ConfigError(ClipboardRewriterError):
    """配置相关异常"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, details)
        self.error_code = "CONFIG_ERROR"


class SettingsLoadError(ConfigError):
    """设置文件读取或解析异常"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, details={"path": path})
        self.path = path
        self.error_code = "SETTINGS_LOAD_ERROR"


class SettingsSaveError(ConfigError):
    """设置文件写入异常"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, details={"path": path})
        self.path = path
        self.error_code = "SETTINGS_SAVE_ERROR"


class RuleError(ClipboardRewriterError):
    """替换规则相关异常基类"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, details)
        self.error_code = "RULE_ERROR"


class RulePatternError(RuleError):
    """正则表达式无法编译"""

    def __init__(self, message: str, pattern: Optional[str] = None):
        super().__init__(message, details={"pattern": pattern})
        self.pattern = pattern
        self.error_code = "RULE_PATTERN_ERROR"


class RuleValidationError(RuleError):
    """规则参数校验失败"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field})
        self.field = field
        self.error_code = "RULE_VALIDATION_ERROR"


class RuleIndexError(RuleError):
    """规则索引越界"""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"规则索引超出范围: {index} (共 {size} 条规则)",
            details={"index": index, "size": size},
        )
        self.index = index
        self.size = size
        self.error_code = "RULE_INDEX_ERROR"


class ClipboardError(ClipboardRewriterError):
    """剪贴板访问异常"""

    def __init__(self, message: str, clipboard_type: Optional[str] = None):
        super().__init__(message, details={"clipboard_type": clipboard_type})
        self.clipboard_type = clipboard_type
        self.error_code = "CLIPBOARD_ERROR"


class ClipboardReadError(ClipboardError):
    """剪贴板读取异常"""

    def __init__(self, message: str):
        super().__init__(message, clipboard_type="read")
        self.error_code = "CLIPBOARD_READ_ERROR"


class ClipboardWriteError(ClipboardError):
    """剪贴板写入异常"""

    def __init__(self, message: str, content_length: Optional[int] = None):
        super().__init__(message, clipboard_type="write")
        self.content_length = content_length
        self.error_code = "CLIPBOARD_WRITE_ERROR"
