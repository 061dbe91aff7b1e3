from typing import Callable

from ..errors import ConfirmationDeclined


def ask(prompt: Callable[[str], str], question: str, cancel_message: str) -> str:
    """Ask the operator; closed stdin or Ctrl-C counts as a declined confirmation."""
    try:
        return prompt(question)
    except (EOFError, KeyboardInterrupt) as exc:
        raise ConfirmationDeclined(cancel_message) from exc
