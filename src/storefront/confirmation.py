"""Asking the customer a yes/no question before the cart discards anything.

The cart never decides on its own to throw away a customer's items. Before
it rebinds to another store it asks through a ``Confirmation`` supplied by
the caller. The answer may be returned directly or awaited; nothing is
mutated until it arrives.
"""

import inspect
from collections.abc import Awaitable
from typing import Protocol

STORE_SWITCH_PROMPT = "This product is from a different store. Empty the current cart and continue?"


class Confirmation(Protocol):
    def confirm(self, prompt: str) -> bool | Awaitable[bool]: ...


async def ask(confirmation: Confirmation | None, prompt: str) -> bool:
    """Resolve the customer's answer. No capability means no consent."""
    if confirmation is None:
        return False
    answer = confirmation.confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class PresetConfirmation:
    """Answers every prompt with a value the caller already knows.

    Used where the question was asked before the request arrived, e.g. an
    HTTP client sending ``confirm_store_switch``.
    """

    def __init__(self, answer: bool):
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer
