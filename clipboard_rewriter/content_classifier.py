"""
剪贴板内容分类器

判断剪贴板内容是否为可处理的文本，以及是否超出大小上限。
"""

import re

from .clipboard_models import ContentKind
from .config import MAX_TEXT_BYTES


class ContentClassifier:
    """根据内容特征决定是否交给规则引擎"""

    # 控制字符，排除 \t \n \r
    control_pattern = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

    def __init__(self, max_bytes: int = MAX_TEXT_BYTES):
        self.max_bytes = max_bytes

    def is_text(self, content: object) -> bool:
        if not isinstance(content, str) or not content:
            return False
        return self.control_pattern.search(content) is None

    def is_too_large(self, content: str) -> bool:
        # 按 UTF-8 字节数计算
        if len(content) > self.max_bytes:
            return True
        return len(content.encode("utf-8", errors="surrogatepass")) > self.max_bytes

    def classify(self, content: object) -> ContentKind:
        if not self.is_text(content):
            return ContentKind.NON_TEXT
        if self.is_too_large(content):
            return ContentKind.TOO_LARGE
        return ContentKind.TEXT
