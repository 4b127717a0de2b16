"""
通用工具函数模块

包含：
- 替换模板解析（$1、${name}、$$ 风格的反向引用）
- 模板展开
- 日志用的文本预览
"""

import re
import string
from typing import List, NamedTuple, Optional, Tuple, Union

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")


class GroupRef(NamedTuple):
    """模板中的分组引用，key 为分组序号或分组名"""
    key: Union[int, str]


TemplatePart = Union[str, GroupRef]


def _extract_name(template: str, start: int) -> Tuple[Optional[str], int]:
    """从 `$` 之后的位置提取分组名

    Returns:
        (分组名, 结束位置)；格式不合法时分组名为 None
    """
    if start < len(template) and template[start] == "{":
        close = template.find("}", start + 1)
        if close == -1:
            return None, start
        name = template[start + 1:close]
        if not name or any(ch not in _NAME_CHARS for ch in name):
            return None, start
        return name, close + 1

    end = start
    while end < len(template) and template[end] in _NAME_CHARS:
        end += 1
    if end == start:
        return None, start
    return template[start:end], end


def _group_key(name: str) -> Union[int, str]:
    if not name.isdigit():
        return name
    try:
        return int(name)
    except ValueError:
        # 超出整数转换位数上限，按不存在的分组处理（展开为空串）
        return name


def parse_template(template: str) -> List[TemplatePart]:
    """
    解析替换模板

    支持的写法：
    - `$1` / `${1}`：按序号引用分组
    - `$name` / `${name}`：按名称引用分组，`$name` 取最长的字母数字下划线序列
    - `$$`：字面量 `$`
    无法识别的 `$` 按字面量保留。

    Args:
        template: 替换模板字符串

    Returns:
        字面量字符串与 GroupRef 交替组成的列表
    """
    parts: List[TemplatePart] = []
    literal: List[str] = []
    i = 0
    while i < len(template):
        ch = template[i]
        if ch != "$":
            literal.append(ch)
            i += 1
            continue

        if template.startswith("$$", i):
            literal.append("$")
            i += 2
            continue

        name, end = _extract_name(template, i + 1)
        if name is None:
            literal.append("$")
            i += 1
            continue

        if literal:
            parts.append("".join(literal))
            literal = []
        parts.append(GroupRef(_group_key(name)))
        i = end

    if literal:
        parts.append("".join(literal))
    return parts


def expand_template(parts: List[TemplatePart], match: "re.Match[str]") -> str:
    """用一次匹配结果展开已解析的模板，缺失或未参与匹配的分组展开为空串"""
    out = []
    for part in parts:
        if isinstance(part, GroupRef):
            try:
                value = match.group(part.key)
            except IndexError:
                value = None
            out.append(value or "")
        else:
            out.append(part)
    return "".join(out)


def preview_text(text: str, limit: int = 60) -> str:
    """生成单行的文本预览，用于日志输出"""
    flat = text.replace("\r", "\\r").replace("\n", "\\n")
    if len(flat) <= limit:
        return flat
    return flat[:limit] + f"... ({len(text)} 字符)"
