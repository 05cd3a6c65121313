"""Client for the external scoring oracle.

The oracle is any OpenAI-compatible chat-completions endpoint that honours a
``json_schema`` response format. One call per ``PromptSpec``; the decoded JSON
payload is returned as-is and shape validation is left to the stage adapters.
Timeouts and transport retries are governed by the ``AsyncOpenAI`` client
(see ``greencredit.client.get_openai_client``).
"""
import json
import logging
from typing import Any, Dict

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict

from greencredit.config.settings import settings
from greencredit.errors import OracleTimeoutError, OracleTransportError, OracleValidationError
from greencredit.utils.text import strip_code_fences

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are GreenCredit, a lending risk analyst combining financial and ESG signals. "
    "Respond only with JSON that matches the requested schema."
)


class PromptSpec(BaseModel):
    """One structured oracle request."""
    model_config = ConfigDict(frozen=True)

    name: str
    prompt: str
    output_schema: Dict[str, Any]


class OpenAIOracle:
    def __init__(self, client: AsyncOpenAI, model: str = settings.ORACLE_MODEL,
                 temperature: float = settings.ORACLE_TEMPERATURE):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def infer(self, spec: PromptSpec) -> Any:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": spec.prompt},
                ],
                temperature=self.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": spec.name, "schema": spec.output_schema},
                },
            )
        except openai.APITimeoutError as e:
            logger.error(f"Oracle call '{spec.name}' timed out: {e}")
            raise OracleTimeoutError(f"{spec.name}: request timed out") from e
        except openai.APIError as e:
            logger.error(f"Oracle call '{spec.name}' failed: {e}")
            raise OracleTransportError(f"{spec.name}: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise OracleValidationError(f"{spec.name}: empty response")

        try:
            return json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise OracleValidationError(f"{spec.name}: response is not valid JSON ({e})") from e
