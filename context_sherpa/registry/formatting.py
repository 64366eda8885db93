"""Text rendering of registry results for agent consumption."""

from __future__ import annotations

from typing import List, Sequence

from ..models import CommunityRule

NO_RESULTS_MESSAGE = "No community rules found matching your criteria."


def format_search_results(entries: Sequence[CommunityRule]) -> str:
    if not entries:
        return NO_RESULTS_MESSAGE

    lines: List[str] = [f"Found {len(entries)} community rule(s) matching your criteria:", ""]
    for position, entry in enumerate(entries, start=1):
        lines.append(f"{position}. **{entry.id}** ({entry.language})")
        lines.append(f"   Author: {entry.author}")
        lines.append(f"   Description: {entry.description}")
        if entry.tags:
            lines.append(f"   Tags: {', '.join(entry.tags)}")
        lines.append("")
    return "\n".join(lines)


def format_rule_details(entry: CommunityRule, body: str) -> str:
    lines = [
        f"Rule Details for '{entry.id}':",
        "",
        f"**ID:** {entry.id}",
        f"**Tool:** {entry.tool}",
        f"**Language:** {entry.language}",
        f"**Author:** {entry.author}",
        f"**Description:** {entry.description}",
    ]
    if entry.tags:
        lines.append(f"**Tags:** {', '.join(entry.tags)}")
    lines.extend(["", "**YAML Content:**", "```yaml", body.rstrip("\n"), "```", ""])
    return "\n".join(lines)


__all__ = ["NO_RESULTS_MESSAGE", "format_rule_details", "format_search_results"]
