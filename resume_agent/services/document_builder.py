"""
pdfmake 文档构造与变换

工具层用到的纯函数：从结构化参数构造简历文档，以及对已有文档做
章节替换、模板/配色/版式调整、关键词增强。

构造出的文档把全部内容包在一个顶层 stack 里，章节标题是
style == "sectionHeader" 的文本块；查找章节时会递归进入 stack 和 columns，
所以对模型直接生成的文档同样适用。
变换函数就地修改传入的文档，调用方负责传入副本。
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

DEFAULT_FONT = "Helvetica"
DEFAULT_TEMPLATE = "modern"
BUILDER_PAGE_MARGINS = [40, 60, 40, 60]
COMPACT_PAGE_MARGINS = [30, 30, 30, 30]

SECTION_HEADER_STYLE = "sectionHeader"
COLUMNS_BLOCK_ID = "resumeColumns"
CORE_COMPETENCIES_TITLE = "Core Competencies"

TEMPLATE_COLORS = {
    "modern": "#2563eb",
    "professional": "#1e40af",
    "creative": "#7c3aed",
}

COLOR_SCHEMES = {
    "blue": "#2563eb",
    "green": "#059669",
    "purple": "#7c3aed",
    "red": "#dc2626",
}

LAYOUTS = ("single-column", "two-column", "compact")

_SKILL_MARKERS = ("SKILL", "COMPETENC")


# ---------------------------------------------------------------- 构造


def build_section_content(section: Dict[str, Any]) -> List[Dict[str, Any]]:
    """按章节类型生成正文块：experience 为职位/时间/要点列表，其余为文本"""
    section_type = section.get("type")
    if section_type == "experience":
        blocks = []
        for item in section.get("items") or []:
            job_title = item.get("title", "")
            if item.get("company"):
                job_title = f"{job_title} | {item['company']}"
            blocks.extend([
                {"text": job_title, "style": "jobTitle", "margin": [0, 10, 0, 5]},
                {"text": item.get("duration", ""), "style": "duration", "margin": [0, 0, 0, 10]},
                {"ul": list(item.get("bullets") or []), "style": "bulletPoints"},
            ])
        return blocks

    content = section.get("content")
    if content is None and section.get("items"):
        content = ", ".join(str(item) for item in section["items"])
    style = "skills" if section_type == "skills" else "normal"
    return [{"text": content or "", "style": style}]


def build_resume_content(
    personal_info: Optional[Dict[str, Any]],
    sections: Optional[List[Dict[str, Any]]]
) -> List[Dict[str, Any]]:
    """
    生成扁平的内容块列表

    Args:
        personal_info: {name, title, contact: {phone, email}}
        sections: [{title, type, content | items}]

    Returns:
        标题区 + 各章节（标题大写）的块列表
    """
    blocks = []
    if personal_info:
        blocks.append({
            "text": personal_info.get("name") or "Your Name",
            "style": "header",
            "alignment": "center",
        })
        blocks.append({
            "text": personal_info.get("title") or "Professional Title",
            "style": "subheader",
            "alignment": "center",
            "margin": [0, 0, 0, 20],
        })
        contact = personal_info.get("contact")
        if contact:
            blocks.append({
                "columns": [
                    {"text": contact.get("phone", ""), "style": "contact"},
                    {"text": contact.get("email", ""), "style": "contact", "alignment": "right"},
                ],
                "margin": [0, 0, 0, 20],
            })

    for section in sections or []:
        blocks.append({"text": str(section.get("title", "")).upper(), "style": SECTION_HEADER_STYLE})
        blocks.extend(build_section_content(section))
    return blocks


def get_resume_styles(template: Optional[str]) -> Dict[str, Dict[str, Any]]:
    """模板样式表；未知模板按 modern 处理"""
    color = TEMPLATE_COLORS.get(template or DEFAULT_TEMPLATE, TEMPLATE_COLORS[DEFAULT_TEMPLATE])
    return {
        "header": {"fontSize": 24, "bold": True, "color": color},
        "subheader": {"fontSize": 16, "italics": True},
        "contact": {"fontSize": 10},
        "sectionHeader": {"fontSize": 14, "bold": True, "margin": [0, 15, 0, 8], "color": color},
        "jobTitle": {"fontSize": 12, "bold": True},
        "duration": {"fontSize": 10, "italics": True},
        "bulletPoints": {"fontSize": 11, "margin": [20, 0, 0, 0]},
        "skills": {"fontSize": 11},
        "normal": {"fontSize": 11},
    }


def build_resume_document(
    personal_info: Optional[Dict[str, Any]],
    sections: Optional[List[Dict[str, Any]]],
    template: Optional[str] = None
) -> Dict[str, Any]:
    """构造完整文档，全部内容包在单个顶层 stack 中"""
    return {
        "pageSize": "A4",
        "pageMargins": list(BUILDER_PAGE_MARGINS),
        "content": [{"stack": build_resume_content(personal_info, sections)}],
        "styles": get_resume_styles(template),
        "defaultStyle": {"font": DEFAULT_FONT},
    }


# ---------------------------------------------------------------- 查找


def _has_style(block: Any, style: str) -> bool:
    if not isinstance(block, dict):
        return False
    value = block.get("style")
    if isinstance(value, list):
        return style in value
    return value == style


def _block_text(block: Any) -> str:
    """取块的纯文本；富文本片段拼接"""
    if not isinstance(block, dict):
        return block if isinstance(block, str) else ""
    text = block.get("text", "")
    if isinstance(text, list):
        return "".join(_block_text(part) for part in text)
    if isinstance(text, dict):
        return _block_text(text)
    return str(text)


def _is_section_header(block: Any) -> bool:
    return _has_style(block, SECTION_HEADER_STYLE)


def iter_block_lists(blocks: List[Any]) -> Iterator[List[Any]]:
    """深度优先遍历文档中的所有块列表（content、stack、columns）"""
    yield blocks
    for block in blocks:
        if not isinstance(block, dict):
            continue
        if isinstance(block.get("stack"), list):
            yield from iter_block_lists(block["stack"])
        for column in block.get("columns") or []:
            if isinstance(column, list):
                yield from iter_block_lists(column)
            elif isinstance(column, dict) and isinstance(column.get("stack"), list):
                yield from iter_block_lists(column["stack"])


def _content(document: Dict[str, Any]) -> List[Any]:
    content = document.get("content")
    if not isinstance(content, list):
        content = [] if content is None else [content]
        document["content"] = content
    return content


def find_section(document: Dict[str, Any], title: str) -> Optional[Tuple[List[Any], int, int]]:
    """
    按标题查找章节（大小写不敏感）

    Returns:
        (所在列表, 标题下标, 正文结束下标)，找不到返回 None
    """
    wanted = title.strip().upper()
    for blocks in iter_block_lists(_content(document)):
        for index, block in enumerate(blocks):
            if _is_section_header(block) and _block_text(block).strip().upper() == wanted:
                return blocks, index, _section_end(blocks, index)
    return None


def _section_end(blocks: List[Any], header_index: int) -> int:
    for index in range(header_index + 1, len(blocks)):
        if _is_section_header(blocks[index]):
            return index
    return len(blocks)


def _find_skills_section(document: Dict[str, Any]) -> Optional[Tuple[List[Any], int, int]]:
    for blocks in iter_block_lists(_content(document)):
        for index, block in enumerate(blocks):
            if not _is_section_header(block):
                continue
            text = _block_text(block).upper()
            if any(marker in text for marker in _SKILL_MARKERS):
                return blocks, index, _section_end(blocks, index)
    return None


def _stack_top_level(document: Dict[str, Any]) -> List[Any]:
    """把平铺在顶层 content 里的块收进一个 stack，返回该 stack"""
    stack = list(_content(document))
    document["content"] = [{"stack": stack}]
    return stack


def _sections_list(document: Dict[str, Any]) -> List[Any]:
    """
    章节所在的主列表：第一个含章节标题的列表，没有章节时取顶层 stack

    章节平铺在顶层 content 时先收进单个 stack，
    使文档顶层只有一个简历块
    """
    content = _content(document)
    for blocks in iter_block_lists(content):
        if any(_is_section_header(block) for block in blocks):
            return _stack_top_level(document) if blocks is content else blocks
    if len(content) == 1 and isinstance(content[0], dict) and isinstance(content[0].get("stack"), list):
        return content[0]["stack"]
    return _stack_top_level(document)


# ---------------------------------------------------------------- 变换


def _infer_section_type(section: str, updates: Dict[str, Any]) -> str:
    if updates.get("type"):
        return updates["type"]
    if "SKILL" in section.upper():
        return "skills"
    if updates.get("items") and isinstance(updates["items"][0], dict):
        return "experience"
    return "text"


def apply_section_updates(document: Dict[str, Any], section: str, updates: Any) -> Dict[str, Any]:
    """
    替换指定章节的正文；章节不存在时追加到章节列表末尾

    Args:
        document: 文档（就地修改）
        section: 章节标题
        updates: {content} / {items} / 完整章节对象，也可以直接是文本
    """
    if not isinstance(updates, dict):
        updates = {"content": updates}

    definition = dict(updates)
    definition["type"] = _infer_section_type(section, updates)
    body = build_section_content(definition)

    target = _sections_list(document)
    found = find_section(document, section)
    if found is None:
        target.append({"text": section.upper(), "style": SECTION_HEADER_STYLE})
        target.extend(body)
        return document

    blocks, header_index, end_index = found
    blocks[header_index + 1:end_index] = body
    return document


def apply_color_scheme(styles: Dict[str, Any], color_scheme: Optional[str]) -> Dict[str, Any]:
    """重新着色 header 和 sectionHeader；未知配色按 blue 处理"""
    color = COLOR_SCHEMES.get((color_scheme or "").lower(), COLOR_SCHEMES["blue"])
    for name in ("header", SECTION_HEADER_STYLE):
        style = dict(styles.get(name) or {})
        style["color"] = color
        styles[name] = style
    return styles


def _flatten_columns(document: Dict[str, Any]) -> None:
    """把双栏块还原为单栏：主栏在前，侧栏在后"""
    for blocks in list(iter_block_lists(_content(document))):
        for index, block in enumerate(blocks):
            if isinstance(block, dict) and block.get("id") == COLUMNS_BLOCK_ID:
                merged = []
                for column in block.get("columns") or []:
                    stack = column.get("stack") if isinstance(column, dict) else column
                    merged.extend(stack or [])
                blocks[index:index + 1] = merged
                return


def _split_two_columns(document: Dict[str, Any]) -> None:
    blocks = _sections_list(document)
    first_header = next(
        (index for index, block in enumerate(blocks) if _is_section_header(block)),
        None,
    )
    if first_header is None:
        return

    main, side = [], []
    index = first_header
    while index < len(blocks):
        end = _section_end(blocks, index)
        segment = blocks[index:end]
        text = _block_text(blocks[index]).upper()
        if any(marker in text for marker in _SKILL_MARKERS):
            side.extend(segment)
        else:
            main.extend(segment)
        index = end

    blocks[first_header:] = [{
        "id": COLUMNS_BLOCK_ID,
        "columns": [
            {"width": "*", "stack": main},
            {"width": 170, "stack": side},
        ],
        "columnGap": 20,
    }]


def apply_layout(document: Dict[str, Any], layout: Optional[str]) -> Dict[str, Any]:
    """
    版式调整

    - single-column：还原为单栏，标准边距
    - two-column：技能类章节放到右侧栏
    - compact：收紧边距和章节间距
    未知版式不做修改
    """
    if layout == "single-column":
        _flatten_columns(document)
        document["pageMargins"] = list(BUILDER_PAGE_MARGINS)
    elif layout == "two-column":
        _flatten_columns(document)
        _split_two_columns(document)
    elif layout == "compact":
        document["pageMargins"] = list(COMPACT_PAGE_MARGINS)
        styles = document.setdefault("styles", {})
        header_style = dict(styles.get(SECTION_HEADER_STYLE) or {})
        header_style["margin"] = [0, 8, 0, 4]
        styles[SECTION_HEADER_STYLE] = header_style
        default_style = dict(document.get("defaultStyle") or {})
        default_style["fontSize"] = 10
        document["defaultStyle"] = default_style
    return document


def _searchable_text(block: Any) -> str:
    if isinstance(block, dict) and isinstance(block.get("ul"), list):
        return " ".join(_block_text(item) if isinstance(item, dict) else str(item) for item in block["ul"])
    return _block_text(block)


def _find_subheader(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for blocks in iter_block_lists(_content(document)):
        for block in blocks:
            if _has_style(block, "subheader"):
                return block
    return None


def enhance_with_keywords(
    document: Dict[str, Any],
    keywords: Optional[List[str]],
    target_role: Optional[str] = None
) -> Dict[str, Any]:
    """
    关键词增强

    缺失的关键词追加到技能章节，没有技能章节时新建 Core Competencies；
    目标职位不在副标题中时追加到副标题
    """
    keywords = [str(keyword).strip() for keyword in keywords or [] if str(keyword).strip()]

    if keywords:
        target = _sections_list(document)
        found = _find_skills_section(document)
        if found is None:
            target.append({"text": CORE_COMPETENCIES_TITLE.upper(), "style": SECTION_HEADER_STYLE})
            target.append({"text": ", ".join(keywords), "style": "skills"})
        else:
            blocks, header_index, end_index = found
            body = blocks[header_index + 1:end_index]
            existing = " ".join(_searchable_text(block) for block in body).lower()
            missing = [keyword for keyword in keywords if keyword.lower() not in existing]
            if missing:
                text_block = next(
                    (block for block in body if isinstance(block, dict) and "text" in block),
                    None,
                )
                if text_block is None:
                    blocks.insert(end_index, {"text": ", ".join(missing), "style": "skills"})
                else:
                    current = _block_text(text_block).strip()
                    joined = ", ".join(missing)
                    text_block["text"] = f"{current}, {joined}" if current else joined

    if target_role:
        subheader = _find_subheader(document)
        if subheader is not None:
            current = _block_text(subheader)
            if target_role.lower() not in current.lower():
                subheader["text"] = f"{current} | {target_role}" if current else target_role

    return document
