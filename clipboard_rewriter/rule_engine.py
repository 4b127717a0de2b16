"""
规则引擎

按列表顺序对文本依次应用替换规则，前一条规则的输出作为后一条规则的输入。
"""

from typing import Iterable, List, Optional, Tuple

from .clipboard_models import Rule, RuleHit
from .utils import expand_template


class RuleEngine:
    """无状态的替换规则执行器"""

    def apply(self, rules: Iterable[Rule], text: str) -> str:
        """依次应用所有启用且有效的规则"""
        return self._fold(rules, text, hits=None)

    def trace(self, rules: Iterable[Rule], text: str) -> Tuple[str, List[RuleHit]]:
        """应用规则并记录每条实际改变了文本的规则"""
        hits: List[RuleHit] = []
        result = self._fold(rules, text, hits=hits)
        return result, hits

    def _fold(self, rules: Iterable[Rule], text: str, hits: Optional[List[RuleHit]]) -> str:
        for index, rule in enumerate(rules):
            if not rule.enabled or rule.matcher is None:
                continue
            template = rule.template
            updated, count = rule.matcher.subn(
                lambda m: expand_template(template, m), text
            )
            if hits is not None and updated != text:
                hits.append(RuleHit(index=index, count=count))
            text = updated
        return text
