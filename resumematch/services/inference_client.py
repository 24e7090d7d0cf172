import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Union

import requests
from pydantic import BaseModel, ValidationError, field_validator

from resumematch.core import prompts
from resumematch.core.config import AISettings
from resumematch.core.exceptions import AIError, AIKillSwitchError
from resumematch.services.object_store import LocalObjectStore
from resumematch.services.rasterizer import extract_document_text

logger = logging.getLogger(__name__)

class ContentBlock(BaseModel):
    type: str
    text: Optional[str] = None

class InferenceMessage(BaseModel):
    role: str = "assistant"
    # Either plain text or a sequence of typed blocks
    content: Union[str, List[ContentBlock]] = ""

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value):
        return "" if value is None else value

class InferenceResponse(BaseModel):
    message: InferenceMessage
    model: Optional[str] = None

    @property
    def text(self) -> Optional[str]:
        return extract_text(self.message.content)

def extract_text(content: Union[str, List[ContentBlock], None]) -> Optional[str]:
    """Normalize both content shapes to plain text; blocks yield their first text block."""
    if content is None:
        return None
    if isinstance(content, str):
        return content
    for block in content:
        if block.type == "text" and block.text is not None:
            return block.text
    return None

def text_message(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "content": [{"type": "text", "text": text}]}

class InferenceClient(Protocol):
    async def feedback(self, document_handle: str, instructions: str) -> Optional[InferenceResponse]: ...

    async def chat(
        self, messages: List[Dict[str, Any]], model: Optional[str] = None
    ) -> Optional[InferenceResponse]: ...

class OpenRouterInferenceClient:
    """
    Critique and chat calls against the OpenRouter chat-completions API.

    No retries: a failed call surfaces as AIError and the caller decides.
    """

    def __init__(self, ai: AISettings, object_store: LocalObjectStore):
        self.ai = ai
        self.object_store = object_store

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.ai.openrouter_api_key}",
            "Content-Type": "application/json",
        }
        response = requests.post(self.ai.base_url, json=payload, headers=headers, timeout=self.ai.timeout_seconds)
        response.raise_for_status()
        return response.json()

    async def _complete(self, messages: List[Dict[str, Any]], model: str) -> Optional[InferenceResponse]:
        if self.ai.kill_switch:
            logger.warning("AI Kill-switch is active. Blocking request.")
            raise AIKillSwitchError()

        if not self.ai.openrouter_api_key:
            logger.error("OpenRouter API Key missing.")
            raise AIError("AI service configuration error.")

        payload = {
            "model": model,
            "messages": messages,
            "temperature": self.ai.temperature,
        }
        logger.info(f"Calling AI Model: {model}")

        try:
            body = await asyncio.to_thread(self._post, payload)
        except requests.exceptions.Timeout as e:
            logger.error("AI service timeout.")
            raise AIError("AI service reached timeout limit.") from e
        except requests.exceptions.HTTPError as e:
            logger.error(f"AI service HTTP error: {e}")
            raise AIError(f"AI service returned error: {e.response.status_code}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"AI service request failed: {e}")
            raise AIError(f"AI service error: {e}") from e

        choices = body.get("choices") or []
        if not choices:
            logger.warning(f"AI Model {model} returned no choices.")
            return None

        try:
            return InferenceResponse(message=choices[0]["message"], model=body.get("model", model))
        except (KeyError, TypeError, ValidationError) as e:
            raise AIError(f"Unexpected AI response shape: {e}") from e

    async def feedback(self, document_handle: str, instructions: str) -> Optional[InferenceResponse]:
        """Critique the stored document at `document_handle` following `instructions`."""
        document = await self.object_store.read(document_handle)
        resume_text = await asyncio.to_thread(extract_document_text, document)
        messages = [
            {"role": "system", "content": prompts.FEEDBACK_SYSTEM},
            {
                "role": "user",
                "content": prompts.get_prompt(
                    prompts.FEEDBACK_USER_TEMPLATE,
                    instructions=instructions,
                    resume_text=resume_text[:20000],
                ),
            },
        ]
        return await self._complete(messages, self.ai.feedback_model)

    async def chat(self, messages: List[Dict[str, Any]], model: Optional[str] = None) -> Optional[InferenceResponse]:
        return await self._complete(messages, model or self.ai.feedback_model)
