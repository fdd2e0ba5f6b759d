"""Function contracts exposed to the model."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Function(ABC):
    """Base class for every callable the model can request."""

    name: str
    description: str
    parameters_schema: dict[str, Any]
    # A terminal function delivers its own user-facing artifact, so no
    # follow-up completion is requested after a batch that contains it.
    terminal: bool = False

    @abstractmethod
    async def run(self, **kwargs: Any) -> Any:
        """Execute with validated arguments.

        May return a ``FunctionResult``, a string, or a dict using the
        ``userMessage`` / ``transactionData`` / ``quickActionsData`` /
        ``error`` keys; the registry normalizes all of them.
        """
