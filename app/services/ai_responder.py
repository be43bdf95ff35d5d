"""Auto-reply generation from a persona prompt plus a knowledge corpus."""

from pathlib import Path
from typing import List, Optional

from app.logging_config import get_logger
from app.models.enums import MessageKind
from app.services.deadline import Deadline
from app.services.llm.base import LLMProvider

logger = get_logger("ai_responder")

KNOWLEDGE_HEADER = "\n\n# Knowledge Base\n"

MEDIA_GUIDANCE = """

When responding to media messages:
- For videos: Acknowledge the video content and respond to any context provided
- For audio: Acknowledge the voice message and respond to the content
- For documents: Acknowledge the document and ask if they need help with it
- For locations: Acknowledge the location sharing and respond appropriately
- For contacts: Acknowledge the contact sharing and respond appropriately
- For stickers: Respond naturally to the sticker context

Always be helpful and acknowledge the media type shared."""

# (description with URL, description without URL); None means the URL is never embedded.
MEDIA_DESCRIPTIONS = {
    MessageKind.IMAGE: ("The user has shared an image (URL: {url}).", "The user has shared an image."),
    MessageKind.VIDEO: ("The user has shared a video (URL: {url}).", "The user has shared a video."),
    MessageKind.AUDIO: ("The user has shared an audio message (URL: {url}).", "The user has shared an audio message."),
    MessageKind.DOCUMENT: ("The user has shared a document (URL: {url}).", "The user has shared a document."),
    MessageKind.LOCATION: (None, "The user has shared their location."),
    MessageKind.CONTACT_CARD: (None, "The user has shared a contact."),
    MessageKind.STICKER: ("The user has sent a sticker (URL: {url}).", "The user has sent a sticker."),
}


def describe_media(kind: MessageKind, content: str, media_url: Optional[str] = None) -> str:
    with_url, without_url = MEDIA_DESCRIPTIONS[kind]
    if media_url and with_url:
        prefix = with_url.format(url=media_url)
    else:
        prefix = without_url
    return f"{prefix} {content}"


class AIResponder:
    def __init__(
        self,
        provider: LLMProvider,
        persona_path: str,
        knowledge_path: str,
        model: str = "gpt-4.1-nano",
    ):
        self.provider = provider
        self.persona_path = Path(persona_path)
        self.knowledge_path = Path(knowledge_path)
        self.model = model
        self._system_prompt: Optional[str] = None

    @property
    def system_prompt(self) -> str:
        """Persona instructions followed by the knowledge base; read from disk once."""
        if self._system_prompt is None:
            persona = self.persona_path.read_text(encoding="utf-8")
            knowledge = self.knowledge_path.read_text(encoding="utf-8")
            self._system_prompt = persona + KNOWLEDGE_HEADER + knowledge
        return self._system_prompt

    def build_messages(
        self, content: str, kind: MessageKind = MessageKind.TEXT, media_url: Optional[str] = None
    ) -> List[dict]:
        if kind == MessageKind.TEXT:
            return [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": content},
            ]
        return [
            {"role": "system", "content": self.system_prompt + MEDIA_GUIDANCE},
            {"role": "user", "content": describe_media(kind, content, media_url)},
        ]

    def respond(
        self,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
        media_url: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> str:
        messages = self.build_messages(content, kind, media_url)
        response = self.provider.generate(messages, model=self.model, deadline=deadline)
        logger.info(
            "AI reply generated",
            extra={"context": {"kind": kind.value, "model": response.model, "usage": response.usage}},
        )
        return response.content
