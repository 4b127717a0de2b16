"""
剪贴板访问层

封装 pyperclip 的读写操作，并在边界处明确区分三种读取结果：
- 正常文本
- 非文本内容（图片、文件等，pyperclip 返回空串或无法解码的数据）
- 读取失败（剪贴板被占用、没有可用的剪贴板机制等）
"""

from typing import Callable, Optional

import pyperclip

from .clipboard_models import ClipboardContent, ReadKind
from .exceptions import ClipboardReadError, ClipboardWriteError
from .logging_config import get_logger

NON_TEXT = ClipboardContent(text="", kind=ReadKind.NON_TEXT)


class ClipboardAdapter:
    """同步的剪贴板读写接口，由监控器放到工作线程中调用"""

    def __init__(
        self,
        paste: Optional[Callable[[], object]] = None,
        copy: Optional[Callable[[str], None]] = None,
    ):
        # pyperclip 首次调用时才选定后端，这里不提前绑定函数对象
        self._paste = paste
        self._copy = copy
        self.logger = get_logger("Clipboard")

    def read(self) -> ClipboardContent:
        """读取剪贴板

        Raises:
            ClipboardReadError: 剪贴板不可用或读取失败
        """
        try:
            value = self._paste() if self._paste else pyperclip.paste()
        except UnicodeDecodeError:
            return NON_TEXT
        except (pyperclip.PyperclipException, OSError) as e:
            raise ClipboardReadError(f"读取剪贴板失败: {e}") from e

        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError:
                return NON_TEXT

        if not isinstance(value, str) or not value:
            return NON_TEXT
        return ClipboardContent(text=value)

    def write(self, text: str) -> None:
        """写入剪贴板

        Raises:
            ClipboardWriteError: 写入失败
        """
        try:
            if self._copy:
                self._copy(text)
            else:
                pyperclip.copy(text)
        except (pyperclip.PyperclipException, OSError) as e:
            raise ClipboardWriteError(f"写入剪贴板失败: {e}", content_length=len(text)) from e
