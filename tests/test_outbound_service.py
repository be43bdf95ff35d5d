import pytest

from app.errors import ExternalServiceError, InvalidInputError
from app.services.outbound_service import (
    build_read_status_envelope,
    build_template_envelope,
    build_text_envelope,
    send_read_status,
    send_template_message,
    send_text_message,
    send_typing_indicator,
)


class TestEnvelopes:
    def test_template_defaults_language(self):
        envelope = build_template_envelope("+62811", "order_update")

        assert envelope == {
            "messaging_product": "whatsapp",
            "to": "+62811",
            "type": "template",
            "template": {"name": "order_update", "language": {"code": "en_US"}},
        }

    def test_template_custom_language(self):
        assert build_template_envelope("+62811", "promo", "id")["template"]["language"]["code"] == "id"

    def test_text(self):
        assert build_text_envelope("+62811", "Hello") == {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": "+62811",
            "type": "text",
            "text": {"preview_url": True, "body": "Hello"},
        }

    def test_read_status_without_typing(self):
        assert build_read_status_envelope("wamid.1") == {
            "messaging_product": "whatsapp",
            "status": "read",
            "message_id": "wamid.1",
        }

    def test_read_status_with_typing(self):
        assert build_read_status_envelope("wamid.1", typing=True)["typing_indicator"] == {"type": "text"}


class TestSend:
    def test_send_text_message(self, channel):
        result = send_text_message(channel, "+62811", "Hello")

        assert result == {"messages": [{"id": "wamid.OUT"}]}
        assert channel.send.call_args[0][0]["text"]["body"] == "Hello"

    @pytest.mark.parametrize("to,body", [("", "Hello"), ("+62811", "")])
    def test_send_text_requires_recipient_and_body(self, channel, to, body):
        with pytest.raises(InvalidInputError):
            send_text_message(channel, to, body)

        channel.send.assert_not_called()

    def test_send_template_message(self, channel):
        send_template_message(channel, "+62811", "order_update", "en_GB")

        envelope = channel.send.call_args[0][0]
        assert envelope["type"] == "template"
        assert envelope["template"]["language"]["code"] == "en_GB"

    def test_send_template_requires_name(self, channel):
        with pytest.raises(InvalidInputError):
            send_template_message(channel, "+62811", "")

    def test_send_read_status_requires_message_id(self, channel):
        with pytest.raises(InvalidInputError):
            send_read_status(channel, "")

    def test_send_read_status(self, channel):
        send_read_status(channel, "wamid.1")

        assert channel.send.call_args[0][0]["status"] == "read"


class TestTypingIndicator:
    def test_sends_typing_indicator(self, channel):
        result = send_typing_indicator(channel, "wamid.1")

        assert result.ok is True
        assert result.value is True
        assert channel.send.call_args[0][0]["typing_indicator"] == {"type": "text"}

    def test_without_message_id_is_skipped(self, channel):
        result = send_typing_indicator(channel, None)

        assert result.ok is True
        assert result.value is False
        channel.send.assert_not_called()

    def test_failure_is_reported_not_raised(self, channel):
        channel.send.side_effect = ExternalServiceError("whatsapp.send", "boom", upstream_status=500)

        result = send_typing_indicator(channel, "wamid.1")

        assert result.ok is False
        assert result.error_code == "typing_indicator_failed"
