"""Assignment files: markdown topic description with optional YAML frontmatter."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import frontmatter

_OVERRIDE_KEYS = ("max_loops", "min_loops_for_closure")


@dataclass
class Assignment:
    topic: str
    topic_context: str
    overrides: dict[str, Any] = field(default_factory=dict)
    source: str = ""


def parse_assignment_file(file_path: Path) -> Assignment:
    """Parse an assignment markdown file.

    Frontmatter keys: topic, max_loops, min_loops_for_closure. Without a
    topic key, the first non-empty body line is the topic (leading '#'
    stripped) and the rest of the body is the topic context.

    Raises:
        ValueError: If no topic can be found or a loop limit is not an integer.
    """
    post = frontmatter.load(str(file_path))
    metadata = dict(post.metadata)
    body = post.content.strip()

    topic = str(metadata.get("topic", "")).strip()
    topic_context = body
    if not topic:
        lines = body.splitlines()
        for index, line in enumerate(lines):
            if line.strip():
                topic = line.strip().lstrip("#").strip()
                topic_context = "\n".join(lines[index + 1:]).strip()
                break

    if not topic:
        raise ValueError(f"Assignment has no topic: {file_path}")

    overrides: dict[str, Any] = {}
    for key in _OVERRIDE_KEYS:
        if key in metadata:
            try:
                overrides[key] = int(metadata[key])
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{key} must be an integer, got {metadata[key]!r}") from exc

    return Assignment(
        topic=topic,
        topic_context=topic_context,
        overrides=overrides,
        source=str(file_path),
    )
