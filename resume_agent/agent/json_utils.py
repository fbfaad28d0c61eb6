"""
模型输出 JSON 的容错处理工具

模型返回的文本常带有代码围栏、注释、尾随逗号或前后缀散文，
这里的函数都只做文本层面的清理，不抛异常。
"""

import json
import re
from typing import Any, Optional

_CODE_FENCE_RE = re.compile(r"```(?:json|javascript|js)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def find_first_json_object(text: str) -> Optional[str]:
    """
    用括号匹配找出文本中第一个顶层 {...} 对象

    字符串字面量内的括号和转义字符不计入深度

    Args:
        text: 原始文本

    Returns:
        对象子串，没有闭合的对象时返回 None
    """
    if not text:
        return None

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def strip_code_fences(text: str) -> str:
    """去掉 ```json / ``` 代码围栏"""
    return _CODE_FENCE_RE.sub("", text).strip()


def strip_js_comments(text: str) -> str:
    """
    去掉 // 行注释和 /* */ 块注释

    字符串字面量内的内容原样保留（例如 "https://..."）
    """
    result = []
    index = 0
    length = len(text)
    in_string = False
    escaped = False

    while index < length:
        char = text[index]
        if in_string:
            result.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            index += 1
            continue

        if char == '"':
            in_string = True
            result.append(char)
            index += 1
        elif text.startswith("//", index):
            newline = text.find("\n", index)
            index = length if newline == -1 else newline
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = length if end == -1 else end + 2
        else:
            result.append(char)
            index += 1

    return "".join(result)


def repair_trailing_commas(text: str) -> str:
    """修复尾随逗号：",}" -> "}"，",]" -> "]" """
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def loads_lenient(candidate: str) -> Optional[Any]:
    """
    宽松解析：清理围栏和注释后解析，失败则修复尾随逗号再解析一次

    Returns:
        解析结果，两次都失败时返回 None
    """
    if not candidate:
        return None

    cleaned = strip_js_comments(strip_code_fences(candidate))
    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    try:
        return json.loads(repair_trailing_commas(cleaned))
    except ValueError:
        return None
