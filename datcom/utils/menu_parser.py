"""
菜单文本拆分工具
把餐厅发来的原始菜单文本拆成 (菜名, 分类) 列表，尽力而为，不保证准确

规则：
- 按行处理，遇到分类标记行切换当前分类（初始为 daily）
- 去掉行首的符号和 "A/C đặt cơm..." 之类的说明行
- 其余内容按逗号拆分，去掉序号和项目符号
"""

import re
from typing import Dict, List

from ..models.menu import MenuCategory

# 餐厅菜单文本中的分类标记（原文为越南语）
CATEGORY_MARKERS = (
    ("MÓN MỚI", MenuCategory.NEW),
    ("MÓN MỖI NGÀY", MenuCategory.DAILY),
    ("MÓN ĐẶC BIỆT", MenuCategory.SPECIAL),
)

_LEADING_SYMBOLS_RE = re.compile(r"^[☆▪︎•\-\s]+")
_ORDER_HINT_LINE_RE = re.compile(r"^[A-Za-z/]+\s*đặt\s+cơm.*$", re.IGNORECASE)
_NUMBERING_RE = re.compile(r"^\d+\.\s*")
_BULLET_RE = re.compile(r"^[▪︎•\-]+\s*")
_ABBREVIATION_RE = re.compile(r"^[A-Z]/[A-Z]")


def _match_category(line: str):
    for marker, category in CATEGORY_MARKERS:
        if marker in line:
            return category
    return None


def parse_menu_text(text: str) -> List[Dict[str, str]]:
    """解析菜单文本，返回 [{"name": ..., "category": ...}]"""
    items: List[Dict[str, str]] = []
    current_category = MenuCategory.DAILY

    for line in (text or "").split("\n"):
        trimmed = line.strip()

        category = _match_category(trimmed)
        if category is not None:
            current_category = category
            continue

        clean_line = _LEADING_SYMBOLS_RE.sub("", trimmed)
        clean_line = _ORDER_HINT_LINE_RE.sub("", clean_line).strip()
        if not clean_line:
            continue

        for dish in clean_line.split(","):
            name = _BULLET_RE.sub("", _NUMBERING_RE.sub("", dish.strip())).strip()
            if len(name) > 1 and not _ABBREVIATION_RE.match(name):
                items.append({"name": name, "category": current_category.value})

    return items
