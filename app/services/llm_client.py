"""
LLM client for schema-constrained generation using OpenAI function calling
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

import openai
from openai import AsyncOpenAI

from app.config import get_settings
from app.errors import ProviderError, Refused, SchemaViolation
from app.logging_config import logger
from app.schemas.contract import FunctionContract, StrictModel
from app.services.prompt_builder import Prompt, describe_prompt


ModelT = TypeVar("ModelT", bound=StrictModel)


@dataclass
class StructuredResult(Generic[ModelT]):
    """Parsed contract payload plus call metadata"""

    data: ModelT
    model: str
    tokens_used: int
    raw_arguments: str


class LLMClient:
    """Forces the model to answer through a single function whose schema is the contract"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize LLM client

        Args:
            api_key: OpenAI API key (uses settings if not provided)
            model: Model identifier (uses settings if not provided)
            temperature: Sampling temperature (uses settings if not provided)
            timeout: Per-request timeout in seconds (uses settings if not provided)
            max_retries: SDK transport retries (uses settings if not provided)
        """
        settings = get_settings() if None in (api_key, model, temperature, timeout, max_retries) else None

        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        if not self.api_key:
            raise ValueError("LLM API key is required")

        self.model = model or settings.LLM_MODEL
        self.temperature = temperature if temperature is not None else settings.LLM_TEMPERATURE
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )
        self.total_tokens_used = 0

        logger.info(f"LLM client initialized with model {self.model}")

    async def generate_structured(
        self, prompt: Prompt, contract: FunctionContract[ModelT]
    ) -> StructuredResult[ModelT]:
        """
        Run one schema-constrained completion

        Args:
            prompt: System and user messages
            contract: Function contract the answer must satisfy

        Returns:
            StructuredResult with the validated payload

        Raises:
            Refused: If the model declined to answer
            SchemaViolation: If the answer does not match the contract
            ProviderError: If the API call failed
        """
        logger.debug(f"Calling {contract.name}: {describe_prompt(prompt)}")
        response = await self._call_openai_api(prompt, contract)
        arguments = self._extract_arguments(response, contract)

        try:
            data = contract.parse(arguments)
        except SchemaViolation as e:
            logger.error(
                f"Schema violation in {contract.name}: {e.message}",
                extra={"raw_payload": e.raw_payload},
            )
            raise

        tokens_used = response.usage.total_tokens if response.usage else 0
        self.total_tokens_used += tokens_used
        logger.info(f"{contract.name} completed, tokens used: {tokens_used}")

        return StructuredResult(
            data=data,
            model=getattr(response, "model", None) or self.model,
            tokens_used=tokens_used,
            raw_arguments=arguments,
        )

    async def _call_openai_api(self, prompt: Prompt, contract: FunctionContract) -> Any:
        """
        Make API call to OpenAI with the contract as a forced tool call

        Args:
            prompt: The prompt to send
            contract: Function contract to force

        Returns:
            OpenAI response object
        """
        try:
            return await self.client.chat.completions.create(
                model=self.model,
                messages=prompt.messages(),
                temperature=self.temperature,
                tools=[contract.tool_definition()],
                tool_choice={"type": "function", "function": {"name": contract.name}},
            )

        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit: {str(e)}")
            raise ProviderError(f"Rate limited by LLM provider: {str(e)}")

        except openai.APITimeoutError as e:
            logger.error(f"OpenAI request timed out after {self.timeout}s: {str(e)}")
            raise ProviderError(f"LLM request timed out: {str(e)}")

        except openai.APIError as e:
            logger.error(f"OpenAI API error: {str(e)}")
            raise ProviderError(f"LLM provider error: {str(e)}")

    def _extract_arguments(self, response: Any, contract: FunctionContract) -> str:
        """
        Pull the function-call arguments out of a completion

        Raises:
            Refused: On an explicit refusal or a content-filter stop
            SchemaViolation: If no matching function call is present
        """
        if not response.choices:
            raise SchemaViolation(f"{contract.name}: response has no choices", raw_payload=None)

        choice = response.choices[0]
        message = choice.message

        refusal = getattr(message, "refusal", None)
        if refusal:
            logger.info(f"Model refused {contract.name}: {refusal}")
            raise Refused(refusal)

        if getattr(choice, "finish_reason", None) == "content_filter":
            logger.info(f"Model output for {contract.name} stopped by content filter")
            raise Refused("The request was declined by the content policy")

        tool_calls = getattr(message, "tool_calls", None) or []
        for tool_call in tool_calls:
            if tool_call.function.name == contract.name and tool_call.function.arguments:
                return tool_call.function.arguments

        logger.error(f"No {contract.name} function call in response")
        raise SchemaViolation(
            f"{contract.name}: no function call in response",
            raw_payload=getattr(message, "content", None),
        )
