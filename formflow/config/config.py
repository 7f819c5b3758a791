"""
Configuration management for the form flow engine.
Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RuleConfig:
    """
    Rule evaluator limits.

    max_evaluations bounds the work a single RuleEvaluator instance does
    between clear_cache() calls. Hitting it raises EvaluationLimitError
    rather than letting a pathological rule tree spin.
    """
    max_evaluations: int = 1000

    def __post_init__(self):
        if self.max_evaluations < 1:
            raise ValueError(
                f"max_evaluations must be >= 1, got {self.max_evaluations}"
            )


@dataclass
class TransitionConfig:
    """Transition engine defaults."""
    history_limit: int = 100
    max_path_steps: int = 20
    review_step_id: str = "review"
    review_terminal: bool = True

    def __post_init__(self):
        if self.history_limit < 1:
            raise ValueError(f"history_limit must be >= 1, got {self.history_limit}")
        if self.max_path_steps < 0:
            raise ValueError(f"max_path_steps must be >= 0, got {self.max_path_steps}")


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = False


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables (optionally seeded from
    .env files) and provides typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        # Later files override earlier ones
        for env_name in ["formflow.env", env_file]:
            env_path = Path(env_name)
            if env_path.exists():
                load_dotenv(env_path, override=True)

        self.rules = self._load_rule_config()
        self.transitions = self._load_transition_config()
        self.log = self._load_log_config()
        self.environment = os.getenv("FORMFLOW_ENV", "production")

        self._initialized = True

    def _load_rule_config(self) -> RuleConfig:
        """Load rule evaluator limits."""
        return RuleConfig(
            max_evaluations=int(os.getenv("FORMFLOW_MAX_RULE_EVALUATIONS", "1000")),
        )

    def _load_transition_config(self) -> TransitionConfig:
        """Load transition engine defaults."""
        return TransitionConfig(
            history_limit=int(os.getenv("FORMFLOW_HISTORY_LIMIT", "100")),
            max_path_steps=int(os.getenv("FORMFLOW_MAX_PATH_STEPS", "20")),
            review_step_id=os.getenv("FORMFLOW_REVIEW_STEP_ID", "review"),
            review_terminal=_env_bool("FORMFLOW_REVIEW_TERMINAL", "true"),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration."""
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_to_file=_env_bool("LOG_TO_FILE", "false"),
        )

    def summary(self) -> str:
        """Generate a configuration summary string."""
        lines = [
            "=" * 45,
            "FORMFLOW CONFIGURATION",
            "=" * 45,
            f"Environment:        {self.environment}",
            f"Rule ceiling:       {self.rules.max_evaluations} evaluations",
            f"History limit:      {self.transitions.history_limit} entries",
            f"Path search bound:  {self.transitions.max_path_steps} steps",
            f"Review step:        {self.transitions.review_step_id} "
            f"({'terminal' if self.transitions.review_terminal else 'pass-through'})",
            f"Log level:          {self.log.level}"
            + (f" (file: {self.log.log_dir})" if self.log.log_to_file else ""),
            "=" * 45,
        ]
        return "\n".join(lines)


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)


def reload_config(env_file: str = ".env") -> Config:
    """Drop the cached instance and re-read the environment."""
    Config._instance = None
    return Config(env_file)
