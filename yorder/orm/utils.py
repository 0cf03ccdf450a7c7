"""ORM 工具函数"""

import re


_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("MenuItem")
        'menu_item'
        >>> to_snake_case("APIClient")
        'api_client'
    """
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.lower()
