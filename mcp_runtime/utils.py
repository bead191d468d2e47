# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Name validation and tool result helpers
"""

import re
from typing import Any, Dict, Optional

from mcp_runtime.core.errors import NameValidationError

_CJK = "\u4e00-\u9fff\u3400-\u4dbf\uf900-\ufaff"

FORBIDDEN_CHARS = re.compile(r"[￥?!$%~*><]")
PERIODS = re.compile(r"[。.]")
ONLY_CJK = re.compile(rf"^[{_CJK}]+$")
HAS_CJK = re.compile(rf"[{_CJK}]")
WHITESPACE = re.compile(r"\s")
ALLOWED_CHARS = re.compile(rf"^[{_CJK}a-zA-Z0-9()（）\-_。.]+$")


def validate_name(name: str) -> None:
    """
    Validate a tool, resource or prompt name.

    Rules:
    1. No special characters from ￥?!$%~*><
    2. Names containing CJK characters may not contain whitespace
    3. A purely CJK name may not start or end with 。
    4. Not all digits
    5. Only CJK, ASCII letters, digits, parentheses, hyphen, underscore and periods
    6. Not all the same character

    Raises:
        NameValidationError: With the code of the first rule violated
    """
    if not name or not isinstance(name, str):
        raise NameValidationError("Name must not be empty", "EMPTY_NAME")

    if FORBIDDEN_CHARS.search(name):
        raise NameValidationError(
            "Name must not contain any of the characters ￥?!$%~*><", "FORBIDDEN_CHARS"
        )

    # Checked before the allowed-character rule so the specific message wins
    if ONLY_CJK.match(PERIODS.sub("", name) or "-"):
        if name.startswith("。") or name.endswith("。"):
            raise NameValidationError(
                "A CJK-only name must not start or end with a period", "CHINESE_WITH_PERIOD"
            )

    if HAS_CJK.search(name) and WHITESPACE.search(name):
        raise NameValidationError(
            "A CJK name must not contain whitespace or line breaks", "CHINESE_WITH_WHITESPACE"
        )

    if len(name) > 1 and name.isdigit():
        raise NameValidationError("Name must not consist only of digits", "ALL_DIGITS")

    if len(name) > 1 and len(set(name)) == 1:
        raise NameValidationError(
            "Name must not consist of a single repeated character", "ALL_SAME_CHARS"
        )

    if not ALLOWED_CHARS.match(name):
        raise NameValidationError(
            "Name may only contain letters, digits, parentheses, hyphens, underscores and periods",
            "INVALID_CHARS"
        )


def text_result(text: str) -> Dict[str, Any]:
    """Create a success tool result with text content"""
    return {"content": [{"type": "text", "text": text}], "isError": False}


def error_result(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    """Create a tool-level error result"""
    return {
        "content": [{"type": "text", "text": f"[{code}] {message}" if code else message}],
        "isError": True,
    }


def image_result(data: str, mime_type: str) -> Dict[str, Any]:
    """Create a success tool result with base64 image content"""
    return {
        "content": [{"type": "image", "data": data, "mimeType": mime_type}],
        "isError": False,
    }
