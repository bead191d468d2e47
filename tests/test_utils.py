# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for name validation and result helpers"""

import pytest

from mcp_runtime.core.errors import InvalidArgumentError, NameValidationError
from mcp_runtime.utils import error_result, image_result, text_result, validate_name


@pytest.mark.parametrize("name", [
    "add",
    "get_weather",
    "tool-v1.2",
    "x",
    "7",
    "计算器",
    "计算器(高级)",
    "search（beta）",
])
def test_valid_names(name):
    """Test names that pass every rule"""
    validate_name(name)


@pytest.mark.parametrize("name,code", [
    ("", "EMPTY_NAME"),
    ("what?", "FORBIDDEN_CHARS"),
    ("price$", "FORBIDDEN_CHARS"),
    ("。计算器", "CHINESE_WITH_PERIOD"),
    ("计算器。", "CHINESE_WITH_PERIOD"),
    ("计算 器", "CHINESE_WITH_WHITESPACE"),
    ("123", "ALL_DIGITS"),
    ("aaaa", "ALL_SAME_CHARS"),
    ("has space", "INVALID_CHARS"),
    ("slash/name", "INVALID_CHARS"),
])
def test_invalid_names(name, code):
    """Test each rule reports its own code"""
    with pytest.raises(NameValidationError) as exc_info:
        validate_name(name)

    assert exc_info.value.code == code


def test_name_validation_error_is_value_error():
    """Test registration errors can be caught as ValueError"""
    with pytest.raises(ValueError):
        validate_name("???")
    assert issubclass(NameValidationError, InvalidArgumentError)


def test_text_result():
    """Test text result shape"""
    assert text_result("hello") == {
        "content": [{"type": "text", "text": "hello"}],
        "isError": False,
    }


def test_error_result_with_code():
    """Test error result prefixes the code"""
    result = error_result("disk full", code="E_DISK")

    assert result["isError"] is True
    assert result["content"][0]["text"] == "[E_DISK] disk full"


def test_error_result_without_code():
    """Test error result without a code is the bare message"""
    assert error_result("boom")["content"][0]["text"] == "boom"


def test_image_result():
    """Test image result carries data and mimeType"""
    result = image_result("aGVsbG8=", "image/png")

    assert result["content"] == [{"type": "image", "data": "aGVsbG8=", "mimeType": "image/png"}]
    assert result["isError"] is False
