from typing import Tuple


def normalize_paging(page, page_size, max_page_size: int = 100) -> Tuple[int, int]:
    try:
        page = int(page or 0)
        page_size = int(page_size or 0)
    except (TypeError, ValueError):
        page, page_size = 0, 0
    p = page if page > 0 else 1
    ps = page_size if page_size > 0 else 20
    ps = min(ps, max_page_size)
    return p, ps
