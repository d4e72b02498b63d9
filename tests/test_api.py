import dataclasses

from fastapi.testclient import TestClient

from services.relay.main import create_app
from services.relay.mailer import DeliveryResult

from conftest import RecordingMailer


def test_minimal_ticket_is_sent(client, mailer, minimal_payload):
    response = client.post("/api/ticket", json=minimal_payload)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "id": "msg_123"}
    assert len(mailer.sent) == 1
    message = mailer.sent[0]
    assert message.to == ["it@example.com"]
    assert message.sender == "Golpac IT <support@example.com>"
    assert message.subject == "[IT Support] S - Unknown host"
    assert message.reply_to is None
    assert message.attachments == []
    assert "Requester email: Not provided" in message.text


def test_printer_jam_scenario(client, mailer):
    response = client.post("/api/ticket", json={
        "subject": "Printer jam",
        "description": "Tray 2 stuck",
        "category": "Printers",
        "printerInfo": "HP LaserJet M404",
        "urgency": "High",
        "hostname": "WS-12",
    })

    assert response.status_code == 200
    assert response.json()["ok"] is True
    message = mailer.sent[0]
    assert "[High] Printer jam - WS-12" in message.subject
    assert "PRINTERS" in message.html
    assert "Printer info</td>" in message.html
    assert "HP LaserJet M404" in message.html


def test_screenshots_become_attachments(client, mailer):
    response = client.post("/api/ticket", json={
        "subject": "S",
        "description": "D",
        "userEmail": "jdoe@example.com",
        "screenshots": ["QUFB", "data:image/png;base64,QkJC"],
    })

    assert response.status_code == 200
    message = mailer.sent[0]
    assert message.reply_to == "jdoe@example.com"
    assert [a.filename for a in message.attachments] == ["screenshot-1.png", "screenshot-2.png"]
    assert [a.content for a in message.attachments] == ["QUFB", "QkJC"]
    assert 'src="cid:screenshot-2"' in message.html


def test_missing_fields_rejected_without_delivery(client, mailer):
    for payload in ({"subject": "S"}, {"description": "D"}, {"subject": "", "description": "D"}, {}):
        response = client.post("/api/ticket", json=payload)
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing subject or description"}
    assert mailer.sent == []


def test_invalid_json_rejected(client, mailer):
    response = client.post("/api/ticket", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Invalid JSON body"}

    response = client.post("/api/ticket", json=["S", "D"])
    assert response.status_code == 400
    assert mailer.sent == []


def test_oversized_body_rejected(settings, mailer):
    client = TestClient(create_app(settings=dataclasses.replace(settings, max_body_bytes=100), mailer=mailer))

    response = client.post("/api/ticket", json={"subject": "S", "description": "D", "screenshot": "Q" * 500})

    assert response.status_code == 413
    assert response.json() == {"ok": False, "error": "Request body too large"}
    assert mailer.sent == []


def test_missing_api_key(settings, mailer, minimal_payload):
    client = TestClient(create_app(settings=dataclasses.replace(settings, resend_api_key=None), mailer=mailer))

    response = client.post("/api/ticket", json=minimal_payload)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Email service not configured"}
    assert mailer.sent == []


def test_missing_recipient(settings, mailer, minimal_payload):
    client = TestClient(create_app(settings=dataclasses.replace(settings, support_email_to=()), mailer=mailer))

    response = client.post("/api/ticket", json=minimal_payload)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Support email not configured"}
    assert mailer.sent == []


def test_validation_checked_before_configuration(settings, mailer):
    client = TestClient(create_app(settings=dataclasses.replace(settings, resend_api_key=None), mailer=mailer))
    response = client.post("/api/ticket", json={"subject": "S"})
    assert response.status_code == 400


def test_provider_failure(settings, minimal_payload):
    mailer = RecordingMailer(result=DeliveryResult(ok=False, error="HTTP 422: invalid"))
    client = TestClient(create_app(settings=settings, mailer=mailer))

    response = client.post("/api/ticket", json=minimal_payload)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Failed to send email via Resend"}
    assert len(mailer.sent) == 1


def test_unexpected_failure(settings, minimal_payload):
    mailer = RecordingMailer(exc=RuntimeError("boom"))
    client = TestClient(create_app(settings=settings, mailer=mailer))

    response = client.post("/api/ticket", json=minimal_payload)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "Failed to send email"}


def test_success_without_provider_id(settings, minimal_payload):
    mailer = RecordingMailer(result=DeliveryResult(ok=True))
    client = TestClient(create_app(settings=settings, mailer=mailer))

    response = client.post("/api/ticket", json=minimal_payload)

    assert response.json() == {"ok": True}


def test_health(client, settings, mailer):
    assert client.get("/health").json() == {
        "status": "healthy",
        "email_configured": True,
        "recipient_configured": True,
    }

    degraded = TestClient(create_app(settings=dataclasses.replace(settings, resend_api_key=None), mailer=mailer))
    assert degraded.get("/health").json()["status"] == "degraded"


def test_cors_preflight(client):
    response = client.options(
        "/api/ticket",
        headers={"Origin": "http://tauri.localhost", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "http://tauri.localhost")


def test_startup_lifespan_runs_without_configuration(mailer, minimal_payload):
    from services.relay.config import Settings

    with TestClient(create_app(settings=Settings(), mailer=mailer)) as client:
        response = client.post("/api/ticket", json=minimal_payload)
    assert response.status_code == 500
    assert response.json()["error"] == "Email service not configured"


def test_chunked_body_over_limit_rejected(settings, mailer):
    client = TestClient(create_app(settings=dataclasses.replace(settings, max_body_bytes=100), mailer=mailer))

    def chunks():
        for _ in range(200):
            yield b"x" * 1024

    response = client.post("/api/ticket", content=chunks(), headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert response.json() == {"ok": False, "error": "Request body too large"}
    assert mailer.sent == []


def test_streamed_body_within_limit_is_accepted(client, mailer):
    def chunks():
        yield b'{"subject": "S", '
        yield b'"description": "D"}'

    response = client.post("/api/ticket", content=chunks(), headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert len(mailer.sent) == 1


def test_deeply_nested_json_rejected(client, mailer):
    response = client.post("/api/ticket", content=b"[" * 60000, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Invalid JSON body"}
    assert mailer.sent == []


def test_whitespace_only_fields_rejected(client, mailer):
    for payload in ({"subject": "   ", "description": "D"}, {"subject": "S", "description": "\n\t "}):
        response = client.post("/api/ticket", json=payload)
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing subject or description"}
    assert mailer.sent == []


def test_error_defaults():
    from services.relay.errors import DeliveryFailedError, RelayError

    assert RelayError("boom").status_code == 500
    assert RelayError("bad", status_code=400).status_code == 400
    error = DeliveryFailedError("Resend")
    assert error.detail is None
    assert error.message == "Failed to send email via Resend"
