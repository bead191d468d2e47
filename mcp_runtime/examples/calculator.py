# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Calculator MCP Server
Arithmetic tools with a per-process history resource and an explain prompt.

    python -m mcp_runtime serve mcp_runtime.examples.calculator:CalculatorServer
"""

import json
import logging
from typing import Dict, List

from pydantic import BaseModel, Field

from mcp_runtime.decorators import prompt, resource, tool
from mcp_runtime.models import ExecutionContext
from mcp_runtime.utils import text_result

logger = logging.getLogger(__name__)


class Operands(BaseModel):
    a: float = Field(description="First operand")
    b: float = Field(description="Second operand")


class ExplainArguments(BaseModel):
    expression: str = Field(description="Expression to explain, e.g. 2 * (3 + 4)")


class CalculatorServer:
    """Basic arithmetic over MCP"""

    def __init__(self):
        self.history: List[str] = []

    def _record(self, line: str) -> Dict:
        self.history.append(line)
        return text_result(line)

    @tool(description="Add two numbers", input_schema=Operands)
    async def add(self, args: Operands) -> Dict:
        return self._record(f"{args.a:g} + {args.b:g} = {args.a + args.b:g}")

    @tool(description="Subtract b from a", input_schema=Operands)
    async def subtract(self, args: Operands) -> Dict:
        return self._record(f"{args.a:g} - {args.b:g} = {args.a - args.b:g}")

    @tool(description="Multiply two numbers", input_schema=Operands)
    async def multiply(self, args: Operands) -> Dict:
        return self._record(f"{args.a:g} * {args.b:g} = {args.a * args.b:g}")

    @tool(description="Divide a by b", input_schema=Operands)
    async def divide(self, args: Operands, context: ExecutionContext) -> Dict:
        if args.b == 0:
            raise ValueError("Division by zero")
        logger.debug(f"divide called (request {context.request_id})")
        return self._record(f"{args.a:g} / {args.b:g} = {args.a / args.b:g}")

    @resource(
        "calculator://history",
        name="history",
        description="Calculations performed by this server",
        mime_type="application/json",
    )
    async def read_history(self, uri: str) -> Dict:
        return {
            "contents": [{
                "uri": uri,
                "mimeType": "application/json",
                "text": json.dumps(self.history),
            }]
        }

    @prompt(
        name="explain",
        description="Ask the model to explain a calculation step by step",
        arguments=ExplainArguments,
    )
    async def explain(self, args: ExplainArguments) -> Dict:
        return {
            "description": f"Explain {args.expression}",
            "messages": [{
                "role": "user",
                "content": {
                    "type": "text",
                    "text": f"Explain step by step how to evaluate: {args.expression}",
                },
            }],
        }
