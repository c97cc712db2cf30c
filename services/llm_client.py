"""
Clients for an optional local text-completion service used for delegated extraction.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import requests

from config.llm_config import LLMConfig

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """Contract for a text-completion collaborator."""

    @abstractmethod
    def health_check(self) -> bool:
        """Return True when the service is reachable and the model is available."""
        pass

    @abstractmethod
    def extract(self, prompt: str) -> Optional[str]:
        """Return the completion for a prompt, or None on any failure."""
        pass


class OllamaClient(BaseLLMClient):
    """Talks to an Ollama server over its HTTP JSON API."""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def _model_available(self, models: list) -> bool:
        wanted = self.config.model
        wanted_prefix = wanted.split(':')[0]
        for entry in models:
            name = entry.get('name', '') if isinstance(entry, dict) else str(entry)
            if name == wanted or name.startswith(f"{wanted_prefix}:") or name == wanted_prefix:
                return True
        return False

    def health_check(self) -> bool:
        """
        Check that the server answers and lists the configured model.

        Returns:
            bool: False on timeout, connection error, bad status or missing model
        """
        url = f"{self.base_url}/api/tags"
        try:
            response = requests.get(url, timeout=self.config.health_timeout)
            response.raise_for_status()
            models = response.json().get('models', [])
        except requests.RequestException as e:
            logger.warning(f"Language model service unavailable at {url}: {str(e)}")
            return False
        except ValueError as e:
            logger.warning(f"Language model service returned invalid JSON: {str(e)}")
            return False

        if not self._model_available(models):
            logger.warning(f"Model {self.config.model} is not installed on {self.base_url}")
            return False

        logger.debug(f"Language model service healthy with model {self.config.model}")
        return True

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            'model': self.config.model,
            'prompt': prompt,
            'stream': False,
            'options': {
                'temperature': self.config.temperature,
                'top_p': self.config.top_p,
                'num_predict': self.config.num_predict
            }
        }

    def extract(self, prompt: str) -> Optional[str]:
        """
        Send a prompt and return the generated text.

        Args:
            prompt: Complete prompt text

        Returns:
            The generated response text, or None on timeout, HTTP error or malformed reply
        """
        url = f"{self.base_url}/api/generate"
        try:
            response = requests.post(url, json=self.build_payload(prompt), timeout=self.config.request_timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning(f"Language model request timed out after {self.config.request_timeout}s")
            return None
        except requests.RequestException as e:
            logger.warning(f"Language model request failed: {str(e)}")
            return None
        except ValueError as e:
            logger.warning(f"Language model returned invalid JSON: {str(e)}")
            return None

        text = data.get('response') if isinstance(data, dict) else None
        if not text:
            logger.warning("Language model returned an empty response")
            return None
        return text
