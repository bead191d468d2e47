# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the MCP server runtime
"""

from setuptools import setup, find_packages

setup(
    name="mcp-runtime",
    version="1.0.0",
    description="MCP server runtime with streamable HTTP session multiplexing",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "pydantic>=2.0.0",
        "sse-starlette>=1.6.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "mcp-runtime=mcp_runtime.cli:main",
        ]
    },
)
