"""
LLM Client - chat completions over HTTP
Connection pooling, retry and timeout for the planning, execution and
summarization agents.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import aiohttp

from errors import LLMError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o"


class LLMClient:
    """
    LLM API client with connection reuse, retry and timeout.

    A call is attempted up to ``max_retries`` times with a linear backoff.
    HTTP 429 waits for ``Retry-After`` when the server sends it. After the
    last attempt the failure is raised as ``LLMError``.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: float = 120,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.api_url = api_url or os.getenv("LLM_API_URL", DEFAULT_API_URL)
        self.api_key = api_key if api_key is not None else os.getenv("LLM_API_KEY", "")
        self.model = model or os.getenv("LLM_MODEL", DEFAULT_MODEL)
        self.default_temperature = temperature if temperature is not None else 1.0
        self.max_tokens = max_tokens or 2000
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds, connect=10)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._session: Optional[aiohttp.ClientSession] = None

        logger.info(
            f"LLM client: url={self.api_url} model={self.model} "
            f"api_key={'set' if self.api_key else 'missing'}"
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Reuse one session (connection pooling)."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=20, limit_per_host=10)
            self._session = aiohttp.ClientSession(connector=connector, timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def call(
        self,
        operation: str,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Send a single user prompt and return the completion text.

        Args:
            operation: name used in logs and errors ("task planning", ...)
            prompt: user message
        """
        return await self.chat(
            [{"role": "user", "content": prompt}],
            operation=operation,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        operation: str = "chat",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        if not self.api_key:
            raise LLMError("LLM_API_KEY is not set", operation=operation, model=self.model)

        session = await self._get_session()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "max_completion_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature is not None else self.default_temperature,
            "stream": False,
        }

        last_error: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(self.max_retries):
            logger.debug(f"Executing {operation} (attempt {attempt + 1}/{self.max_retries})")
            try:
                async with session.post(self.api_url, headers=headers, json=payload) as response:
                    if response.status == 200:
                        return extract_content(await response.json())

                    last_status = response.status
                    if response.status == 429:
                        retry_after = retry_after_seconds(response.headers, self.retry_delay * (attempt + 1))
                        last_error = "rate limited"
                        logger.warning(f"Rate limit hit for {operation}, waiting {retry_after}s")
                        if attempt < self.max_retries - 1:
                            await asyncio.sleep(retry_after)
                        continue

                    last_error = f"API error ({response.status}): {await response.text()}"
                    logger.warning(f"{operation}: {last_error}")

            except asyncio.TimeoutError:
                last_error = "timeout"
                logger.warning(f"{operation}: timeout on attempt {attempt + 1}")
            except aiohttp.ClientError as e:
                last_error = str(e)
                logger.warning(f"{operation}: error on attempt {attempt + 1}: {e}")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        logger.error(f"{operation} failed after {self.max_retries} attempts: {last_error}")
        raise LLMError(
            f"Failed to execute {operation} after {self.max_retries} attempts: {last_error}",
            operation=operation,
            model=self.model,
            status_code=last_status,
        )


def extract_content(data: Dict[str, Any]) -> str:
    """Completion text from an OpenAI-style or Anthropic-style response body."""
    content = ""
    choices = data.get("choices")
    if choices:
        choice = choices[0]
        if "message" in choice:
            content = choice["message"].get("content") or ""
        elif "text" in choice:
            content = choice["text"] or ""

    if not content and "content" in data:
        if isinstance(data["content"], list):
            for item in data["content"]:
                if item.get("type") == "text":
                    content = item.get("text", "")
                    break
        elif isinstance(data["content"], str):
            content = data["content"]

    return content


def retry_after_seconds(headers, default: float) -> float:
    """Delay-seconds form of ``Retry-After``; anything else falls back to ``default``."""
    value = headers.get("Retry-After")
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric Retry-After header: {value!r}")
        return default
    return seconds if seconds >= 0 else default
