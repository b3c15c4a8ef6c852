"""
LLM service
Chat completions, JSON-mode completions and speech synthesis via OpenAI.
"""
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from sales_coach.errors import CompletionError, RequestTimeoutError
from sales_coach.utils.timeout import with_timeout

logger = logging.getLogger(__name__)

Message = Dict[str, str]

_JSON_ARRAY_RE = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def parse_json_response(text: str) -> Any:
    """
    Decode a model reply that should be JSON.

    Models sometimes wrap the JSON in prose or code fences, so when the whole
    reply does not parse, the first array (then object) found in it is tried.

    Returns:
        The decoded value, or None when nothing in the reply parses
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        pass

    for pattern in (_JSON_ARRAY_RE, _JSON_OBJECT_RE):
        match = pattern.search(text or "")
        if match:
            try:
                return json.loads(match.group(0))
            except ValueError:
                continue
    return None


class LLMService:
    """LLM service backed by an injected ``AsyncOpenAI`` client."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o",
        fast_model: str = "gpt-4o-mini",
        tts_model: str = "tts-1",
        tts_voice: str = "alloy",
        timeout: float = 60.0,
    ):
        """
        Args:
            client: OpenAI client
            model: Default chat model
            fast_model: Cheaper model for chat and feedback scoring
            tts_model: Speech model
            tts_voice: Default speech voice
            timeout: Seconds before a call is abandoned
        """
        self.client = client
        self.model = model
        self.fast_model = fast_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.timeout = timeout

    async def complete(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        model: Optional[str] = None,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Request a chat completion.

        Args:
            messages: Chat messages ({"role", "content"})
            temperature: Sampling temperature
            model: Overrides the default model
            json_mode: Ask for a JSON object response
            max_tokens: Optional output cap

        Returns:
            The reply text ("" when the model returns no content)

        Raises:
            CompletionError: if the call fails or times out
        """
        model_to_use = model or self.model
        kwargs: Dict[str, Any] = {
            "model": model_to_use,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        start = time.time()
        prompt_length = sum(len(m.get("content") or "") for m in messages)
        logger.info(f"[LLM] completion (model: {model_to_use}, prompt length: {prompt_length}, temperature: {temperature})")

        try:
            response = await with_timeout(self.client.chat.completions.create(**kwargs), self.timeout)
        except (OpenAIError, RequestTimeoutError) as e:
            logger.error(f"[LLM] completion failed: {e} ({time.time() - start:.2f}s)")
            raise CompletionError(f"Failed to generate completion: {e}") from e

        content = response.choices[0].message.content or ""
        logger.info(f"[LLM] completion done ({time.time() - start:.2f}s, {len(content)} chars)")
        return content

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful assistant.",
        temperature: float = 0.7,
        model: Optional[str] = None,
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        return await self.complete(messages, temperature=temperature, model=model)

    async def complete_json(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        model: Optional[str] = None,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """Completion decoded with :func:`parse_json_response` (None if unparseable)."""
        text = await self.complete(
            messages,
            temperature=temperature,
            model=model,
            json_mode=json_mode,
            max_tokens=max_tokens,
        )
        parsed = parse_json_response(text)
        if parsed is None:
            logger.warning(f"[LLM] reply is not JSON: {text[:200]}")
        return parsed

    async def text_to_speech(self, text: str, voice: Optional[str] = None) -> bytes:
        """
        Synthesize speech.

        Returns:
            MP3 audio bytes

        Raises:
            CompletionError: if the call fails or times out
        """
        start = time.time()
        try:
            response = await with_timeout(
                self.client.audio.speech.create(
                    model=self.tts_model,
                    voice=voice or self.tts_voice,
                    input=text,
                    response_format="mp3",
                ),
                self.timeout,
            )
        except (OpenAIError, RequestTimeoutError) as e:
            logger.error(f"[LLM] speech failed: {e}")
            raise CompletionError(f"Failed to generate voice: {e}") from e

        audio = response.content
        logger.info(f"[LLM] speech done ({time.time() - start:.2f}s, {len(audio)} bytes)")
        return audio
