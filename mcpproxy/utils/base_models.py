# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/utils/base_models.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Base model utilities for MCP Proxy.

Configuration records are written in snake_case in Python and accepted (and
emitted) in camelCase on the wire, matching the shape embedding callers use.
"""

# Standard
from typing import Any, Dict

# Third-Party
from pydantic import BaseModel, ConfigDict


def to_camel_case(s: str) -> str:
    """Convert a string from snake_case to camelCase.

    Args:
        s (str): The string to be converted, which is assumed to be in snake_case.

    Returns:
        str: The string converted to camelCase.

    Examples:
        >>> to_camel_case("container_image")
        'containerImage'
        >>> to_camel_case("api_key")
        'apiKey'
        >>> to_camel_case("url")
        'url'
        >>> to_camel_case("")
        ''
    """
    return "".join(word.capitalize() if i else word for i, word in enumerate(s.split("_")))


class BaseModelWithConfigDict(BaseModel):
    """Base model shared by every configuration and result record.

    Provides:
    - Automatic conversion from snake_case to camelCase aliases
    - Populate by name, so ``container_image`` and ``containerImage`` both work
    - Unknown keys are rejected so misspelled settings surface early
    """

    model_config = ConfigDict(
        alias_generator=to_camel_case,
        populate_by_name=True,
        extra="forbid",
    )

    def to_dict(self, use_alias: bool = False) -> Dict[str, Any]:
        """Convert the model instance into a dictionary representation.

        Args:
            use_alias (bool): Whether to use aliases for field names (default is False).

        Returns:
            Dict[str, Any]: Field names mapped to values, with ``None`` values omitted.

        Examples:
            >>> class Sample(BaseModelWithConfigDict):
            ...     container_id: str = "c1"
            >>> Sample().to_dict(use_alias=True)
            {'containerId': 'c1'}
        """
        return self.model_dump(by_alias=use_alias, exclude_none=True)
