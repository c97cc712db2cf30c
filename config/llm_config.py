"""Configuration settings for the optional local language-model service."""
import os

from config.pipeline_config import _env_flag


class LLMConfig:
    """Configuration class for the Ollama text-completion collaborator."""

    def __init__(self):
        """Initialize language-model configuration from the environment."""
        self.enabled: bool = _env_flag('LLM_ENABLED', 'true')
        self.base_url: str = os.getenv('LLM_BASE_URL', 'http://127.0.0.1:11434').rstrip('/')
        self.model: str = os.getenv('LLM_MODEL', 'gemma2:2b')
        self.health_timeout: float = float(os.getenv('LLM_HEALTH_TIMEOUT', '5'))
        self.request_timeout: float = float(os.getenv('LLM_REQUEST_TIMEOUT', '15'))
        self.max_prompt_chars: int = int(os.getenv('LLM_MAX_PROMPT_CHARS', '1500'))
        self.temperature: float = float(os.getenv('LLM_TEMPERATURE', '0.5'))
        self.top_p: float = float(os.getenv('LLM_TOP_P', '0.9'))
        self.num_predict: int = int(os.getenv('LLM_NUM_PREDICT', '500'))

    @property
    def is_configured(self) -> bool:
        """Check if delegated extraction should be attempted."""
        return self.enabled and bool(self.base_url) and bool(self.model)

    def validate(self) -> None:
        """Validate the configuration settings."""
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError("LLM base URL must start with http:// or https://")

        if self.health_timeout <= 0 or self.request_timeout <= 0:
            raise ValueError("LLM timeouts must be positive")

        if self.max_prompt_chars < 100:
            raise ValueError("LLM prompt limit must be at least 100 characters")

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            'enabled': self.enabled,
            'base_url': self.base_url,
            'model': self.model,
            'health_timeout': self.health_timeout,
            'request_timeout': self.request_timeout,
            'max_prompt_chars': self.max_prompt_chars,
            'temperature': self.temperature,
            'top_p': self.top_p,
            'num_predict': self.num_predict
        }

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'LLMConfig':
        """Create configuration from dictionary, falling back to the environment for missing keys."""
        instance = cls()
        known = instance.to_dict()
        for key, value in config_dict.items():
            if key in known and value is not None:
                setattr(instance, key, value)
        return instance
