from __future__ import annotations

import logging
from typing import Callable, Optional

from ..context import RunContext
from ..errors import UserDeclinedOverwrite

logger = logging.getLogger(__name__)

_YES = {"y", "yes"}
_NO = {"n", "no"}


def ask_yes_no(
    ctx: RunContext,
    question: str,
    default: bool = False,
    *,
    input_fn: Optional[Callable[[str], str]] = None,
) -> bool:
    """Ask a yes/no question.

    Without a terminal, or with ``--yes``, the default answer is applied
    immediately so automation never blocks.
    """

    if ctx.yes or not ctx.interactive:
        logger.info("Answering %s to: %s", "yes" if default else "no", question)
        return default

    read = input_fn or input
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            reply = read(f"{question} {suffix}: ").strip().lower()
        except EOFError:
            return False
        if not reply:
            return default
        if reply in _YES:
            return True
        if reply in _NO:
            return False
        print("Please answer y or n.")


def confirm_destructive(
    ctx: RunContext,
    question: str,
    *,
    input_fn: Optional[Callable[[str], str]] = None,
) -> None:
    """Confirm a destructive action, defaulting to no.

    ``--force`` pre-answers yes. A decline raises UserDeclinedOverwrite,
    which callers treat as a no-op.
    """

    if ctx.force:
        logger.info("Forced: %s", question)
        return
    if not ask_yes_no(ctx, question, default=False, input_fn=input_fn):
        raise UserDeclinedOverwrite(f"Declined: {question}")
