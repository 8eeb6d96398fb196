# services/llm_service.py
import asyncio
import requests
import logging
from typing import Dict, Any, Optional

from config import settings
from core.domain import SynthesisError
from core.enums import ErrorCode
from core.interfaces import ILLMService

logger = logging.getLogger(settings.LOGGER_NAME)

class LLMService(ILLMService):
    """A service to interact with a hosted chat-completions API (OpenRouter)."""

    def __init__(
        self,
        base_url: str = settings.OPENROUTER_BASE_URL,
        model: str = settings.OPENROUTER_MODEL,
        api_key: str = settings.OPENROUTER_API_KEY,
        timeout: float = settings.LLM_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initializes the LLMService.

        Args:
            base_url: The base URL of the chat-completions API.
            model: The model identifier to request.
            api_key: Bearer token; an empty key means "not configured".
            timeout: The request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": settings.APP_TITLE,
        }

    def chat(self, system_prompt: str, user_prompt: str) -> str:
        """
        Sends a system + user message pair and returns the answer text.
        """
        if not self.api_key:
            raise SynthesisError("LLM API key is not configured", ErrorCode.LLM_NOT_CONFIGURED)

        try:
            logger.info(f"Sending prompt to LLM model '{self.model}'...")
            response = self._session.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": settings.LLM_TEMPERATURE,
                    "max_tokens": settings.LLM_MAX_TOKENS,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()  # Raises an HTTPError for bad responses (4xx or 5xx)
            result = response.json()

        except requests.exceptions.Timeout:
            logger.error(f"LLM request timed out after {self.timeout} seconds.")
            raise SynthesisError("LLM request timed out", ErrorCode.LLM_TIMEOUT)
        except requests.exceptions.ConnectionError:
            logger.error(f"Cannot connect to LLM at {self.base_url}. Is the service reachable?")
            raise SynthesisError("Cannot connect to LLM service", ErrorCode.LLM_UNREACHABLE)
        except requests.exceptions.HTTPError as e:
            logger.error(f"LLM service returned an error: {e.response.status_code} {e.response.text[:500]}")
            raise SynthesisError(f"LLM error: {e.response.status_code}", ErrorCode.LLM_BAD_RESPONSE)
        except ValueError:
            # requests' JSONDecodeError is also a RequestException, so this comes first
            logger.error("LLM response body was not valid JSON.")
            raise SynthesisError("Malformed response from LLM", ErrorCode.LLM_BAD_RESPONSE)
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM request failed: {e}")
            raise SynthesisError("Cannot connect to LLM service", ErrorCode.LLM_UNREACHABLE)

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.error(f"LLM response was malformed: {str(result)[:500]}")
            raise SynthesisError("Malformed response from LLM", ErrorCode.LLM_BAD_RESPONSE)

        if not isinstance(content, str) or not content.strip():
            logger.error("LLM response was empty.")
            raise SynthesisError("Empty response from LLM", ErrorCode.LLM_BAD_RESPONSE)

        logger.info("Successfully received response from LLM.")
        return content.strip()

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        # Run the blocking request in a separate thread
        return await asyncio.to_thread(self.chat, system_prompt, user_prompt)

    def get_config(self) -> Dict[str, Any]:
        return {"model": self.model, "api_key_configured": bool(self.api_key)}

    def _probe(self) -> Dict[str, Any]:
        if not self.api_key:
            return {"accessible": False, "error": "API key not configured"}
        try:
            response = self._session.get(
                f"{self.base_url}/models",
                headers=self._headers(),
                timeout=settings.HEALTH_TIMEOUT_SECONDS,
            )
            if response.ok:
                return {"accessible": True, "error": None}
            return {"accessible": False, "error": f"HTTP {response.status_code}"}
        except requests.exceptions.RequestException as e:
            return {"accessible": False, "error": str(e)}

    async def check_health(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._probe)
