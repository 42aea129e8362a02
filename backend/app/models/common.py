"""Common types shared across all models."""

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant", "system"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire.

    Python code uses snake_case attributes; JSON bodies accept and emit
    camelCase (``nextSteps``, ``textContent``, ``reportId``). Snake_case keys
    are accepted on input as well.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(BaseModel):
    """Single message in a completion conversation."""

    role: Role
    content: str
