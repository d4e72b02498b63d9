import asyncio
import json

import httpx

from services.relay.mailer import EmailMessage, ResendMailer
from shared.schemas.ticket import Attachment


def make_message(**overrides):
    fields = dict(
        sender="Golpac IT <support@example.com>",
        to=["it@example.com"],
        subject="[IT Support] S - Unknown host",
        text="text body",
        html="<p>html body</p>",
    )
    fields.update(overrides)
    return EmailMessage(**fields)


def send(mailer, message):
    return asyncio.run(mailer.send(message))


def test_successful_send_posts_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_1"})

    mailer = ResendMailer(api_key="re_key", transport=httpx.MockTransport(handler))
    attachment = Attachment(filename="screenshot.png", content="QQ==", content_id="screenshot-1")
    result = send(mailer, make_message(reply_to="jdoe@example.com", attachments=[attachment]))

    assert result.ok is True
    assert result.message_id == "email_1"
    assert captured["url"] == "https://api.resend.com/emails"
    assert captured["auth"] == "Bearer re_key"
    assert captured["body"]["from"] == "Golpac IT <support@example.com>"
    assert captured["body"]["to"] == ["it@example.com"]
    assert captured["body"]["reply_to"] == "jdoe@example.com"
    assert captured["body"]["attachments"] == [
        {"filename": "screenshot.png", "content": "QQ==", "content_type": "image/png", "content_id": "screenshot-1"}
    ]


def test_payload_omits_empty_optionals():
    payload = ResendMailer(api_key="k").build_payload(make_message())
    assert "attachments" not in payload
    assert "reply_to" not in payload


def test_provider_error_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"statusCode": 422, "name": "validation_error", "message": "Invalid `to` field"})

    result = send(ResendMailer(api_key="k", transport=httpx.MockTransport(handler)), make_message())

    assert result.ok is False
    assert result.error == "HTTP 422: Invalid `to` field"


def test_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    result = send(ResendMailer(api_key="k", transport=httpx.MockTransport(handler)), make_message())
    assert result.ok is False
    assert result.error == "HTTP 502: Bad gateway"


def test_transport_error_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = send(ResendMailer(api_key="k", transport=httpx.MockTransport(handler)), make_message())
    assert result.ok is False
    assert "connection refused" in result.error
