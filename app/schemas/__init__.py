from app.schemas.message import Attachment, CreateMessageInput, LastMessageSnapshot
from app.schemas.webhook import WebhookMessageEvent, WebhookResponse

__all__ = ["Attachment", "CreateMessageInput", "LastMessageSnapshot", "WebhookMessageEvent", "WebhookResponse"]
