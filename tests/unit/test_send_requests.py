"""
Send Request Tests

Parsing loosely-typed payloads into the closed set of send request kinds.
"""

import dataclasses

import pytest

from transport.messages import (
    ContactMessage,
    DocumentMessage,
    ImageMessage,
    LocationMessage,
    TextMessage,
    UnsupportedMessageType,
    VoiceMessage,
    is_send_request,
    parse_send_request,
)


class TestParseSendRequest:
    """parse_send_request() accepts camelCase and snake_case keys."""

    def test_text_is_default_kind(self):
        request = parse_send_request({"chatId": "6281234567890@c.us", "text": "hi"})
        assert request == TextMessage(chat_id="6281234567890@c.us", text="hi")

    def test_message_key_as_text(self):
        request = parse_send_request({"chat_id": "628123", "message": "hi"})
        assert isinstance(request, TextMessage)
        assert request.text == "hi"

    def test_image(self):
        request = parse_send_request({
            "type": "image",
            "chatId": "6281234567890@c.us",
            "imageUrl": "https://example.org/kajian.png",
            "caption": "Kajian Ahad",
        })
        assert request == ImageMessage(
            chat_id="6281234567890@c.us",
            image_url="https://example.org/kajian.png",
            caption="Kajian Ahad",
        )

    def test_voice(self):
        request = parse_send_request({"type": "voice", "chatId": "628123", "audioUrl": "https://x/a.ogg"})
        assert isinstance(request, VoiceMessage)

    def test_document(self):
        request = parse_send_request({
            "type": "document",
            "chatId": "628123",
            "url": "https://x/laporan.pdf",
            "filename": "laporan.pdf",
        })
        assert isinstance(request, DocumentMessage)
        assert request.filename == "laporan.pdf"

    def test_location_coerces_numbers(self):
        request = parse_send_request({
            "type": "location",
            "chatId": "628123",
            "latitude": "-6.1702",
            "longitude": "106.8310",
            "name": "Masjid Istiqlal",
        })
        assert isinstance(request, LocationMessage)
        assert request.latitude == pytest.approx(-6.1702)
        assert request.longitude == pytest.approx(106.8310)

    def test_contact(self):
        request = parse_send_request({"type": "contact", "chatId": "628123", "contact": {"fullName": "Takmir"}})
        assert isinstance(request, ContactMessage)
        assert request.contact == {"fullName": "Takmir"}

    def test_type_is_case_insensitive(self):
        request = parse_send_request({"type": "IMAGE", "chatId": "628123", "imageUrl": "https://x"})
        assert isinstance(request, ImageMessage)


class TestParseErrors:

    def test_missing_chat_id(self):
        with pytest.raises(ValueError, match="chatId"):
            parse_send_request({"text": "hi"})

    def test_missing_text(self):
        with pytest.raises(ValueError, match="text"):
            parse_send_request({"chatId": "628123"})

    def test_missing_image_url(self):
        with pytest.raises(ValueError, match="imageUrl"):
            parse_send_request({"type": "image", "chatId": "628123"})

    def test_bad_coordinates(self):
        with pytest.raises(ValueError):
            parse_send_request({"type": "location", "chatId": "628123", "latitude": "north"})

    def test_unknown_type(self):
        with pytest.raises(UnsupportedMessageType):
            parse_send_request({"type": "sticker", "chatId": "628123"})


class TestRequestModels:

    def test_requests_are_frozen(self):
        request = TextMessage(chat_id="628123@c.us", text="hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.text = "changed"

    def test_kind_tags(self):
        assert TextMessage.kind == "text"
        assert ImageMessage.kind == "image"
        assert LocationMessage.kind == "location"

    def test_is_send_request(self):
        assert is_send_request(TextMessage(chat_id="628123@c.us", text="hi"))
        assert not is_send_request({"chat_id": "628123@c.us", "text": "hi"})
        assert not is_send_request("hi")
