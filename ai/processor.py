# ai/processor.py

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import openai

from .prompts import AIPrompts
from .tools import LLM_TOOL_CATALOG
from utils.constants import Messages, ToolNames

logger = logging.getLogger(__name__)


@dataclass
class ToolDecision:
    """What the model chose: a tool name with raw (unvalidated) arguments"""
    intent: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    response: str = ''

    @classmethod
    def text_reply(cls, message: str) -> 'ToolDecision':
        return cls(
            intent=ToolNames.SEND_TEXT_REPLY,
            tool_name=ToolNames.SEND_TEXT_REPLY,
            arguments={'message': message},
            response=message,
        )


class AIProcessor:
    """Intent classifier backed by an OpenAI-compatible chat completion with tool calling"""

    def __init__(self, api_key: str = None, config: Optional[Dict] = None, client=None):
        config = config or {}
        self.model = config.get('model') or 'gpt-4o-mini'
        self.temperature = config.get('temperature') if config.get('temperature') is not None else 0.1
        self.timeout = config.get('timeout') or 30.0
        self.client = client

        if self.client is None and api_key:
            try:
                self.client = openai.OpenAI(
                    api_key=api_key,
                    base_url=config.get('base_url') or None,
                    timeout=self.timeout,
                    max_retries=0,
                )
                logger.info(f"✅ OpenAI client initialized (model: {self.model})")
            except Exception as e:
                logger.error(f"⚠️ OpenAI initialization failed: {e}")
                self.client = None
        elif self.client is None:
            logger.warning("⚠️ Running without an LLM - free text gets an apology reply")

    def is_available(self) -> bool:
        """Check if AI processing is available"""
        return self.client is not None

    def classify(self, user_message: str, context: Dict) -> ToolDecision:
        """Pick a tool for the message; never raises"""
        if not self.client:
            logger.warning("AI client not available")
            return ToolDecision.text_reply(Messages.AI_APOLOGY)

        try:
            logger.info(f"🤖 AI analyzing: '{user_message}' at stage '{context.get('stage')}'")

            completion = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": AIPrompts.get_system_prompt(context)},
                    {"role": "user", "content": AIPrompts.get_user_prompt(user_message)}
                ],
                tools=LLM_TOOL_CATALOG,
                tool_choice="auto",
            )

            message = completion.choices[0].message
            content = message.content or ""

            if message.tool_calls:
                tool_call = message.tool_calls[0]
                arguments = self._parse_arguments(tool_call.function.arguments)
                logger.info(f"🎯 Tool: {tool_call.function.name} args={arguments}")
                return ToolDecision(
                    intent=tool_call.function.name,
                    tool_name=tool_call.function.name,
                    arguments=arguments,
                    response=content,
                )

            return ToolDecision.text_reply(content or Messages.HELP_PROMPT)

        except openai.RateLimitError as e:
            logger.warning(f"⚠️ OpenAI rate limit or quota hit: {e}")
        except openai.APIError as e:
            logger.error(f"❌ OpenAI API error: {e}")
        except (json.JSONDecodeError, AttributeError, IndexError, TypeError) as e:
            logger.error(f"❌ Could not read model response: {e}")
        except Exception as e:
            logger.error(f"❌ AI understanding error: {e}")

        return ToolDecision.text_reply(Messages.AI_APOLOGY)

    @staticmethod
    def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
        """Decode the tool-call argument string; markdown fences are tolerated"""
        if not raw:
            return {}
        cleaned = raw.strip()
        if cleaned.startswith('```'):
            cleaned = cleaned.strip('`')
            if cleaned.startswith('json'):
                cleaned = cleaned[4:]
        parsed = json.loads(cleaned or '{}')
        if not isinstance(parsed, dict):
            raise TypeError(f"tool arguments must be a JSON object, got {type(parsed).__name__}")
        return parsed
