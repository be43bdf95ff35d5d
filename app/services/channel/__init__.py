from app.services.channel.base import ChannelClient
from app.services.channel.whatsapp_client import WhatsAppCloudClient

__all__ = ["ChannelClient", "WhatsAppCloudClient"]
