"""Load settings.yaml into typed dataclasses. Checks executor API keys at startup."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_DEFAULT_CLOSING_MESSAGE = "Thank you for taking part! I hope this conversation helped your thinking."


@dataclass
class ExecutorConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    max_retries: int = 3
    retry_base_delay: float = 0.1
    base_url: str | None = None


@dataclass(frozen=True)
class DialogueConfig:
    """Loop policy and wording for one conversation.

    Raises:
        ValueError: If a loop limit is negative or min_loops_for_closure > max_loops.
    """

    max_loops: int = 5
    min_loops_for_closure: int = 1
    response_language: str = "English"
    closing_message: str = _DEFAULT_CLOSING_MESSAGE

    def __post_init__(self) -> None:
        if self.max_loops < 0 or self.min_loops_for_closure < 0:
            raise ValueError("Loop limits must be non-negative")
        if self.min_loops_for_closure > self.max_loops:
            raise ValueError(
                f"min_loops_for_closure ({self.min_loops_for_closure}) "
                f"cannot exceed max_loops ({self.max_loops})"
            )

    def with_overrides(self, **overrides: object) -> "DialogueConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


@dataclass
class DefaultsConfig:
    executor: str
    state_dir: Path
    transcript_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    dialogue: DialogueConfig
    executors: dict[str, ExecutorConfig]
    available_executors: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if the
    dialogue section is inconsistent. Missing API keys are logged, not
    raised; callers check available_executors.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        executor=str(defaults_raw["executor"]),
        state_dir=Path(defaults_raw["state_dir"]),
        transcript_dir=Path(defaults_raw["transcript_dir"]),
    )

    dialogue_raw = raw.get("dialogue", {})
    dialogue = DialogueConfig(
        max_loops=int(dialogue_raw.get("max_loops", 5)),
        min_loops_for_closure=int(dialogue_raw.get("min_loops_for_closure", 1)),
        response_language=str(dialogue_raw.get("response_language", "English")),
        closing_message=str(dialogue_raw.get("closing_message", _DEFAULT_CLOSING_MESSAGE)),
    )

    executors: dict[str, ExecutorConfig] = {}
    available_executors: set[str] = set()

    for executor_name, executor_raw in raw["executors"].items():
        executor_cfg = ExecutorConfig(
            name=executor_name,
            sdk=executor_raw["sdk"],
            model=executor_raw["model"],
            api_key_env=executor_raw["api_key_env"],
            timeout_sec=int(executor_raw["timeout_sec"]),
            max_tokens=int(executor_raw["max_tokens"]),
            max_retries=int(executor_raw.get("max_retries", 3)),
            retry_base_delay=float(executor_raw.get("retry_base_delay", 0.1)),
            base_url=executor_raw.get("base_url"),
        )
        executors[executor_name] = executor_cfg

        api_key = os.environ.get(executor_raw["api_key_env"], "").strip()
        if api_key:
            available_executors.add(executor_name)
            logger.info("Executor available: %s", executor_name)
        else:
            logger.info(
                "Executor skipped (no API key): %s, set %s in .env",
                executor_name,
                executor_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        dialogue=dialogue,
        executors=executors,
        available_executors=available_executors,
    )
