"""Click CLI: interactive terminal session against a real LLM executor."""

import asyncio
import logging
import sys
import uuid
from collections.abc import Callable
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, DialogueConfig, load_config
from mentora_ai.assignment import parse_assignment_file
from mentora_ai.errors import GenerationError, UnauthorizedError
from mentora_ai.executors.anthropic_executor import AnthropicPromptExecutor
from mentora_ai.executors.base import PromptExecutor
from mentora_ai.executors.gemini import GeminiPromptExecutor
from mentora_ai.executors.openai_executor import OpenAIPromptExecutor
from mentora_ai.models import DialogueStage, DialogueState
from mentora_ai.orchestrator import MentoraOrchestrator
from mentora_ai.output import print_ai_message, print_status, save_transcript
from mentora_ai.service import ConversationService
from mentora_ai.store import JsonFileStateStore, StateStore

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

# Keyed by the `sdk` field in settings.yaml
EXECUTOR_CLASSES: dict[str, type[PromptExecutor]] = {
    "google-genai": GeminiPromptExecutor,
    "openai": OpenAIPromptExecutor,
    "anthropic": AnthropicPromptExecutor,
}

EXIT_COMMANDS = frozenset({"exit", "quit"})


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_executor(config: AppConfig, executor_name: str) -> PromptExecutor:
    """Instantiate the named executor.

    Raises:
        click.ClickException: If the executor is unknown or has no API key.
    """
    if executor_name not in config.executors:
        raise click.ClickException(
            f"Unknown executor '{executor_name}'. Choose from: {', '.join(sorted(config.executors))}"
        )
    if executor_name not in config.available_executors:
        raise click.ClickException(
            f"Executor '{executor_name}' has no API key. Set {config.executors[executor_name].api_key_env} in .env."
        )
    executor_cfg = config.executors[executor_name]
    executor_cls = EXECUTOR_CLASSES.get(executor_cfg.sdk)
    if executor_cls is None:
        raise click.ClickException(f"Unsupported sdk '{executor_cfg.sdk}' for executor '{executor_name}'")
    return executor_cls(executor_cfg)


def _resolve_dialogue_config(
    base: DialogueConfig,
    assignment_overrides: dict,
    max_loops: int | None,
    min_loops: int | None,
) -> DialogueConfig:
    """CLI flag > assignment frontmatter > settings.yaml.

    Raises:
        click.BadParameter: If the combined limits are inconsistent.
    """
    try:
        return base.with_overrides(**assignment_overrides).with_overrides(
            max_loops=max_loops,
            min_loops_for_closure=min_loops,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


async def _run_session(
    service: ConversationService,
    store: StateStore,
    conversation_id: str,
    user_id: str,
    topic_context: str,
    dialogue_config: DialogueConfig,
    read_input: Callable[[], str],
) -> DialogueState:
    """Drive the conversation until it ends or the student types exit/quit.

    Returns the last persisted state.
    """
    state = store.load_state(conversation_id, user_id)
    if state.stage == DialogueStage.AWAITING_START:
        try:
            outcome = await service.process_turn(conversation_id, user_id, "", topic_context, dialogue_config)
        except GenerationError as exc:
            logger.error("Opening turn failed: %s", exc.__cause__ or exc)
            console.print("[bold red]Error:[/bold red] Could not start the conversation. Run again to retry.")
            return state
        print_ai_message(outcome.message)
        print_status(outcome.state, outcome.usage)
        state = outcome.state

    while not MentoraOrchestrator.is_ended(state):
        try:
            message = read_input().strip()
        except EOFError:
            break
        if not message:
            continue
        if message.lower() in EXIT_COMMANDS:
            break

        try:
            outcome = await service.process_turn(conversation_id, user_id, message, topic_context, dialogue_config)
        except GenerationError as exc:
            logger.error("Turn failed: %s", exc.__cause__ or exc)
            console.print("[bold red]Error:[/bold red] AI generation failed. Your last message was not saved, please try again.")
            continue

        print_ai_message(outcome.message)
        print_status(outcome.state, outcome.usage)
        state = outcome.state

    if MentoraOrchestrator.is_ended(state):
        console.print("\n[bold green]Conversation complete.[/bold green]")
    return state


@click.command()
@click.argument("topic", required=False)
@click.option("--assignment", "assignment_file", type=click.Path(exists=True),
              help="Read topic, context and loop limits from a .md assignment file")
@click.option("--executor", "executor_name", default=None, help="Executor from settings.yaml (default: from config)")
@click.option("--max-loops", default=None, type=int, help="Maximum case/principle loop-backs")
@click.option("--min-loops", default=None, type=int, help="Loop-backs required before closure")
@click.option("--conversation-id", default=None, help="Resume (or name) a stored conversation")
@click.option("--user", "user_id", default="local", show_default=True, help="Owner of the conversation")
@click.option("--state-dir", default=None, help="Conversation state directory (default: from config)")
@click.option("--transcript-dir", default=None, help="Transcript output directory (default: from config)")
@click.option("--no-transcript", is_flag=True, default=False, help="Do not save a markdown transcript")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    topic: str | None,
    assignment_file: str | None,
    executor_name: str | None,
    max_loops: int | None,
    min_loops: int | None,
    conversation_id: str | None,
    user_id: str,
    state_dir: str | None,
    transcript_dir: str | None,
    no_transcript: bool,
    verbose: bool,
) -> None:
    """Mentora -- Socratic dialogue in the terminal.

    \b
    Examples:
      mentora-chat "Should AI-generated art be eligible for copyright?"
      mentora-chat --assignment assignments/trolley.md --executor claude
      mentora-chat --conversation-id 3f2c... --user alice
    Type 'exit' or 'quit' to leave; the conversation can be resumed later.
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    topic_context = ""
    assignment_overrides: dict = {}
    slug_override: str | None = None
    if assignment_file:
        try:
            assignment = parse_assignment_file(Path(assignment_file))
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--assignment") from exc
        topic = topic or assignment.topic
        topic_context = assignment.topic_context
        assignment_overrides = assignment.overrides
        slug_override = Path(assignment_file).stem

    dialogue_config = _resolve_dialogue_config(config.dialogue, assignment_overrides, max_loops, min_loops)
    executor = _build_executor(config, executor_name or config.defaults.executor)

    store = JsonFileStateStore(Path(state_dir) if state_dir else config.defaults.state_dir)
    orchestrator = MentoraOrchestrator(executor, dialogue_config)
    service = ConversationService(store, orchestrator, dialogue_config)

    if conversation_id and store.exists(conversation_id):
        try:
            state = store.load_state(conversation_id, user_id)
        except UnauthorizedError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)
        console.print(f"[dim]Resuming conversation {conversation_id} ({state.stage.value})[/dim]")
    else:
        if not topic:
            console.print("[bold red]Error:[/bold red] Provide a TOPIC argument or --assignment.")
            sys.exit(1)
        conversation_id = conversation_id or uuid.uuid4().hex
        service.create_conversation(conversation_id, user_id, topic)
        state = store.load_state(conversation_id, user_id)

    console.print(f"\n[bold cyan]Mentora[/bold cyan] -- {executor.name()} ({executor.model_string()})")
    console.print(f"Topic: [italic]{state.topic}[/italic]")
    console.print(f"Conversation: {conversation_id}\n")

    final_state = asyncio.run(
        _run_session(
            service=service,
            store=store,
            conversation_id=conversation_id,
            user_id=user_id,
            topic_context=topic_context,
            dialogue_config=dialogue_config,
            read_input=lambda: console.input("[bold green]You:[/bold green] "),
        )
    )

    if not no_transcript and len(final_state.conversation_history) > 0:
        saved = save_transcript(
            final_state,
            Path(transcript_dir) if transcript_dir else config.defaults.transcript_dir,
            slug_override=slug_override,
        )
        console.print(f"\n[dim]Transcript saved to: {saved}[/dim]")


if __name__ == "__main__":
    main()
