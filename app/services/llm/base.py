from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from app.services.deadline import Deadline


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for completion backends."""

    @abstractmethod
    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> LLMResponse:
        """Return the first completion choice. Raises when the backend returns none."""
