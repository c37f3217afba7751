"""
Matcher Prompt Template

Instructions for the remote matchers. The user picks from a list, so the
prompt asks for broad recall: a missing candidate costs the user a manual
search, an extra one costs a glance.
"""

import json
from typing import Any, Dict, List

MATCHER_SYSTEM_PROMPT = """
你是库存管理系统的商品匹配助手。用户通过语音说出要入库的商品和数量，语音识别结果可能包含同音字、错别字、口音或不完整的商品名。
你的任务是把这句话匹配到商品列表中的商品，并提取数量。

匹配规则（按优先级）：
1. 包含/模糊匹配：用户常常只说商品名的一部分。用户说的是宽泛的词时，列表中所有包含该词的商品都要放进 suggestions。
   例：用户说"狗套"，应返回"狗套S""狗套M""狗套L""狗套XL"等。
2. 同音/拼音相近：必须考虑拼音相似的词。
   例："护西"应匹配"护膝"；"福娃""护晚"应匹配"护腕"；"皮蛋A黑"应匹配"皮带A黑"。
3. 语义/别名：例如"小狗的衣服"可匹配"狗套"或"背心"。

数量规则：
- 把中文数字（"两个""三十""一打"）转换成阿拉伯数字。
- "一个狗套"这类说法数量为 1；完全没有提到数量时返回 null，由调用方默认为 1。

输出要求：
- 只返回一个标准 JSON 对象，不要 Markdown 代码块，不要注释，不要任何解释文字。
- matchedProductId：只有在确定是某一个商品时才填写，否则为 null；填写时它必须同时是 suggestions 的第一个元素。
- suggestions：返回 {min_suggestions}-{max_suggestions} 个相关商品 ID，越全越好；即使有精确匹配，也要列出其他相似商品。
- 只能使用商品列表中出现过的 ID。

输出结构示例：
{{"matchedProductId": "C001A1A", "detectedQuantity": 5, "suggestions": ["C001A1A", "C001A2A", "P005A0A3"]}}
"""

MATCHER_USER_PROMPT = """
用户语音指令: "{transcript}"

可用商品列表 (JSON):
{catalog_json}
"""


def create_matcher_system_prompt(max_suggestions: int = 20) -> str:
    """System prompt asking for between half the cap and the cap of suggestions."""
    max_suggestions = max(1, max_suggestions)
    min_suggestions = max(1, min(10, max_suggestions // 2))
    return MATCHER_SYSTEM_PROMPT.format(
        min_suggestions=min_suggestions,
        max_suggestions=max_suggestions,
    ).strip()


def create_matcher_user_prompt(transcript: str, catalog_projection: List[Dict[str, Any]]) -> str:
    """User prompt embedding the transcript and the compact catalog."""
    return MATCHER_USER_PROMPT.format(
        transcript=transcript.replace('"', "'"),
        catalog_json=json.dumps(catalog_projection, ensure_ascii=False, separators=(",", ":")),
    ).strip()
