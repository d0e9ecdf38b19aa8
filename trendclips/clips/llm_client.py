"""
Thin chat client for a local LLM served by Ollama.
"""
import logging
from typing import Optional

import ollama

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert social media content analyst. You analyze videos and "
    "create engaging short-form content. Respond in the exact JSON format requested."
)


class LLMClient:
    """Sends single-turn prompts to an Ollama model and returns the reply text."""

    def __init__(
        self,
        model: str = "qwen2.5:7b",
        host: Optional[str] = None,
        timeout: Optional[float] = 60.0,
    ):
        self.model = model
        self.timeout = timeout
        self._client = ollama.Client(host=host, timeout=timeout)
        self._verify_connection()

    def _verify_connection(self):
        """Check that Ollama is running and model is available."""
        try:
            models = self._client.list()
            available = [m.model for m in models.models]
            if self.model not in available:
                base_name = self.model.split(":")[0]
                found = any(m.startswith(base_name) for m in available)
                if not found:
                    logger.warning(
                        "Model '%s' not found in Ollama. Available: %s. "
                        "Will attempt to pull on first use.",
                        self.model,
                        available,
                    )
        except Exception as e:
            logger.warning("Cannot connect to Ollama: %s", e)

    def complete(
        self,
        prompt: str,
        system: str = DEFAULT_SYSTEM_PROMPT,
        json_mode: bool = True,
    ) -> str:
        """Run one chat turn.

        Raises:
            Any transport, auth or timeout error from the Ollama client.
        """
        response = self._client.chat(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            format="json" if json_mode else None,
        )
        return response.message.content or ""
