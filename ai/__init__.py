"""AI processing module"""

from .processor import AIProcessor, ToolDecision
from .prompts import AIPrompts
from .tools import (
    LLM_TOOL_CATALOG, TOOL_ARGUMENT_MODELS, ToolValidationError, validate_tool_arguments
)

__all__ = [
    'AIProcessor', 'ToolDecision', 'AIPrompts', 'LLM_TOOL_CATALOG',
    'TOOL_ARGUMENT_MODELS', 'ToolValidationError', 'validate_tool_arguments'
]
