"""
Utility functions shared by the commerce apps
"""
import logging
from typing import Any, Callable, Dict, List

from django.core.paginator import Paginator, EmptyPage

logger = logging.getLogger(__name__)


def generate_unique_code(
    candidate: Callable[[int], str],
    exists: Callable[[str], bool],
    fallback: Callable[[], str],
    max_attempts: int = 10,
) -> str:
    """
    Draw candidates until one is free, giving up after ``max_attempts``.

    ``fallback`` must produce a value that is unique by construction
    (e.g. derived from the row's own primary key).
    """
    for attempt in range(max_attempts):
        code = candidate(attempt)
        if not exists(code):
            return code
        logger.debug(f"Code collision on attempt {attempt + 1}: {code}")

    code = fallback()
    logger.warning(f"Exhausted {max_attempts} attempts, using fallback code {code}")
    return code


def paginate(queryset, page: int, size: int, formatter: Callable[[Any], Dict], key: str = "items") -> Dict:
    """
    Paginate a queryset with zero-based page numbers.
    """
    size = max(1, min(size, 100))
    paginator = Paginator(queryset, size)
    try:
        page_obj = paginator.page(page + 1)
        content: List[Dict] = [formatter(obj) for obj in page_obj.object_list]
    except EmptyPage:
        content = []

    return {
        key: content,
        "current_page": page,
        "page_size": size,
        "total_elements": paginator.count,
        "total_pages": paginator.num_pages if paginator.count else 0,
        "is_first": page == 0,
        "is_last": page + 1 >= paginator.num_pages,
    }


def mask_card_number(card_number: str, issuer: str = "CARD") -> str:
    """
    Mask all but the last four digits: ``VISA(*1234)``.
    """
    digits = "".join(ch for ch in card_number if ch.isdigit())
    return f"{issuer}(*{digits[-4:]})" if digits else f"{issuer}(*)"
