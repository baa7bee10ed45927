"""Interactive UI components for choosing room members."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

logger = logging.getLogger(__name__)


class MemberCompleter(Completer):
    """Fuzzy search completer for room member names."""

    def __init__(self, members: list[str]):
        """Initialize the completer with the room's members."""
        self.members = members

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for name in self.members:
            if not query or self._fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(document.text),
                    display=name,
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="crl" matches "Carol"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def select_member_interactive(members: list[str], label: str = "Payer") -> str | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: Room members to choose from
        label: Prompt label

    Returns:
        Selected member name, or None to cancel
    """
    print(f"\nMembers: {', '.join(members)}")
    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(f"{label}: ", complete_while_typing=True).strip()

            if not result:
                return None

            if result in members:
                logger.info(f"User selected member: {result}")
                return result

            print("Not a member of this room. Press Tab to complete.")

    except (KeyboardInterrupt, EOFError):
        print("\nCancelled")
        return None


def confirm_action(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
