"""
分页窗口计算 - 纯函数，无副作用。

给定总条目数、固定每页数量和请求页码，计算该页的起止下标、总页数以及页码是否有效。
调用方根据 is_valid 决定给用户的错误提示。
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PageWindow:
    """
    一页的窗口。

    属性:
        start_index: 起始下标（含）
        end_index_exclusive: 结束下标（不含）
        total_pages: 总页数（0 条目时为 0）
        is_valid: 1 ≤ 请求页码 ≤ total_pages
    """
    start_index: int
    end_index_exclusive: int
    total_pages: int
    is_valid: bool

    def slice(self, items: list) -> list:
        """取出该页的条目；无效窗口返回空列表。"""
        if not self.is_valid:
            return []
        return items[self.start_index:self.end_index_exclusive]


def compute_window(total_items: int, page_size: int, requested_page: int) -> PageWindow:
    """
    计算分页窗口。

    示例: total_items=45, page_size=20, requested_page=3
          → start_index=40, end_index_exclusive=45, total_pages=3, is_valid=True

    非正的 page_size 视为无法分页：总页数为 0，任何页码都无效。
    """
    total_pages = math.ceil(total_items / page_size) if page_size > 0 and total_items > 0 else 0
    start = (requested_page - 1) * max(page_size, 0)
    end = min(start + max(page_size, 0), total_items)
    return PageWindow(
        start_index=start,
        end_index_exclusive=end,
        total_pages=total_pages,
        is_valid=1 <= requested_page <= total_pages,
    )
