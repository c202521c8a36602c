"""Rich console output and markdown transcript save for dialogue sessions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from mentora_ai.models import DialogueState, Role, TokenUsage
from mentora_ai.state import format_principle_history, format_stance_history

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def print_ai_message(message: str) -> None:
    console.print(Panel(Markdown(message), title="[bold cyan]Mentora[/bold cyan]", border_style="cyan"))


def print_status(state: DialogueState, usage: TokenUsage | None = None) -> None:
    """Print a compact status table after each turn."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column()

    stance = state.current_stance
    principle = state.current_principle
    table.add_row("Stage", f"{state.stage.value} ({state.sub_state.value})")
    table.add_row("Topic", state.topic)
    table.add_row("History", f"{len(state.conversation_history)} messages")
    table.add_row("Loops", str(state.loop_count))
    table.add_row("Stance", f"V{stance.version}: {stance.position}" if stance else "-")
    table.add_row("Principle", f"V{principle.version}: {principle.statement}" if principle else "-")
    if usage is not None:
        table.add_row("Tokens", f"{usage.total} (in {usage.input}, out {usage.output}, thoughts {usage.thoughts})")

    console.print(table)


def save_transcript(state: DialogueState, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the conversation as a markdown file.

    Args:
        state: Conversation state to write out.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the topic.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(state.topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Mentora Dialogue: {state.topic[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Stage:** {state.stage.value}",
        f"**Loops:** {state.loop_count}",
        f"**Discussion satisfied:** {'yes' if state.discussion_satisfied else 'no'}",
        "",
        "## Stance Evolution",
        "",
        format_stance_history(state.stance_history),
        "",
        "## Principle Evolution",
        "",
        format_principle_history(state.principle_history),
        "",
    ]

    if state.summary:
        lines += ["## Summary", "", state.summary, ""]

    lines += ["---", "", "## Dialogue", ""]
    for entry in state.conversation_history:
        speaker = "Student" if entry.role == Role.USER else "Mentora"
        lines += [f"**{speaker}:**", "", entry.text, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved: %s", filepath)
    return filepath
