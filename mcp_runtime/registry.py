# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Capability Registry
In-memory maps of tool, resource and prompt registrations
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel

from mcp_runtime.core.errors import DuplicateRegistrationError, InvalidArgumentError
from mcp_runtime.models import (
    PromptArgument,
    PromptDefinition,
    ResourceDefinition,
    ToolDefinition,
    ToolSchema,
)
from mcp_runtime.utils import validate_name

logger = logging.getLogger(__name__)

PromptArguments = Union[Type[BaseModel], List[Union[PromptArgument, Dict[str, Any]]], None]


@dataclass
class ToolRegistration:
    name: str
    handler: Callable
    schema: ToolSchema

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.schema.description or None,
            input_schema=self.schema.input_schema.model_json_schema(),
        )


@dataclass
class ResourceRegistration:
    uri: str
    handler: Callable
    name: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = None

    def to_definition(self) -> ResourceDefinition:
        return ResourceDefinition(
            uri=self.uri,
            name=self.name,
            description=self.description,
            mime_type=self.mime_type,
        )


@dataclass
class PromptRegistration:
    name: str
    handler: Callable
    description: Optional[str] = None
    arguments: PromptArguments = None

    @property
    def argument_model(self) -> Optional[Type[BaseModel]]:
        if isinstance(self.arguments, type) and issubclass(self.arguments, BaseModel):
            return self.arguments
        return None

    def argument_list(self) -> Optional[List[PromptArgument]]:
        """Arguments as advertised on the wire"""
        model = self.argument_model
        if model is not None:
            return [
                PromptArgument(
                    name=field_name,
                    description=field_info.description,
                    required=field_info.is_required(),
                )
                for field_name, field_info in model.model_fields.items()
            ]
        if self.arguments is None:
            return None
        return [
            arg if isinstance(arg, PromptArgument) else PromptArgument.model_validate(arg)
            for arg in self.arguments
        ]

    def to_definition(self) -> PromptDefinition:
        return PromptDefinition(
            name=self.name,
            description=self.description,
            arguments=self.argument_list(),
        )


class Registry:
    """
    Three independent name-keyed maps forming the capability surface.

    Shared by every session of one server; mutated at registration time and
    read-mostly afterwards. Re-registration replaces the previous entry
    unless the registry was built with allow_overwrite=False.
    """

    def __init__(self, allow_overwrite: bool = True):
        self.allow_overwrite = allow_overwrite
        self.tools: Dict[str, ToolRegistration] = {}
        self.resources: Dict[str, ResourceRegistration] = {}
        self.prompts: Dict[str, PromptRegistration] = {}

    def _check_overwrite(self, kind: str, table: Dict[str, Any], key: str) -> None:
        if key not in table:
            return
        if not self.allow_overwrite:
            raise DuplicateRegistrationError(kind, key)
        logger.debug(f"Replacing {kind.lower()} registration: {key}")

    def register_tool(self, name: str, handler: Callable, schema: ToolSchema) -> None:
        """Register a tool; schema.input_schema validates call arguments"""
        if not name or not isinstance(name, str):
            raise InvalidArgumentError("Tool name must be a non-empty string")
        validate_name(name)
        if not callable(handler):
            raise InvalidArgumentError("Tool handler must be callable")
        if not isinstance(schema, ToolSchema):
            raise InvalidArgumentError("Tool schema must be a ToolSchema with an input_schema model")

        self._check_overwrite("Tool", self.tools, name)
        self.tools[name] = ToolRegistration(name=name, handler=handler, schema=schema)
        logger.debug(f"Registered tool: {name}")

    def register_resource(
        self,
        uri: str,
        handler: Callable,
        name: Optional[str] = None,
        description: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> None:
        """Register a resource keyed by URI"""
        if not uri or not isinstance(uri, str):
            raise InvalidArgumentError("Resource URI must be a non-empty string")
        if not callable(handler):
            raise InvalidArgumentError("Resource handler must be callable")
        if name:
            validate_name(name)

        self._check_overwrite("Resource", self.resources, uri)
        self.resources[uri] = ResourceRegistration(
            uri=uri,
            handler=handler,
            name=name,
            description=description,
            mime_type=mime_type,
        )
        logger.debug(f"Registered resource: {uri}")

    def register_prompt(
        self,
        name: str,
        handler: Callable,
        description: Optional[str] = None,
        arguments: PromptArguments = None
    ) -> None:
        """Register a prompt; arguments is a model class or an argument list"""
        if not name or not isinstance(name, str):
            raise InvalidArgumentError("Prompt name must be a non-empty string")
        validate_name(name)
        if not callable(handler):
            raise InvalidArgumentError("Prompt handler must be callable")
        is_model = isinstance(arguments, type) and issubclass(arguments, BaseModel)
        if arguments is not None and not is_model and not isinstance(arguments, list):
            raise InvalidArgumentError("Prompt arguments must be a list or a pydantic model class")

        self._check_overwrite("Prompt", self.prompts, name)
        self.prompts[name] = PromptRegistration(
            name=name,
            handler=handler,
            description=description,
            arguments=arguments,
        )
        logger.debug(f"Registered prompt: {name}")

    def get_tool(self, name: str) -> Optional[ToolRegistration]:
        return self.tools.get(name)

    def get_resource(self, uri: str) -> Optional[ResourceRegistration]:
        return self.resources.get(uri)

    def get_prompt(self, name: str) -> Optional[PromptRegistration]:
        return self.prompts.get(name)

    def list_tools(self) -> List[ToolDefinition]:
        return [tool.to_definition() for tool in list(self.tools.values())]

    def list_resources(self) -> List[ResourceDefinition]:
        return [resource.to_definition() for resource in list(self.resources.values())]

    def list_prompts(self) -> List[PromptDefinition]:
        return [prompt.to_definition() for prompt in list(self.prompts.values())]
