import dataclasses
import json
import os

os.environ.setdefault("JWT_SECRET", "test-secret-for-certificate-api-0123456789")

import jwt
import pytest
from fastapi.testclient import TestClient

import app_server

SECRET = os.environ["JWT_SECRET"]


@pytest.fixture
def client(monkeypatch, renderer):
    monkeypatch.setattr(app_server, "RENDERER", renderer)
    monkeypatch.setattr(app_server, "SETTINGS", dataclasses.replace(app_server.SETTINGS, jwt_secret=SECRET))
    return TestClient(app_server.app)


@pytest.fixture
def auth_headers():
    token = jwt.encode({"sub": "admin-1", "role": "admin"}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def payload(certificate, **extra):
    body = {
        "certificate": certificate,
        "template": {"width": 1200, "height": 900, "placeholders": {"studentName": {"x": 600, "y": 300}}},
    }
    body.update(extra)
    return body


def test_health_is_public(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_pdf_requires_token(client, certificate):
    response = client.post("/api/certificates/pdf", json=payload(certificate))
    assert response.status_code == 401


def test_pdf_rejects_bad_token(client, certificate):
    response = client.post(
        "/api/certificates/pdf",
        json=payload(certificate),
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.json()["detail"].startswith("Invalid token")


def test_pdf_download(client, auth_headers, certificate):
    response = client.post("/api/certificates/pdf", json=payload(certificate, locale="en"), headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == "attachment; filename=certificate-CERT-2024-0001.pdf"
    assert response.content.startswith(b"%PDF")


def test_missing_template_is_client_error(client, auth_headers, certificate):
    response = client.post("/api/certificates/pdf", json={"certificate": certificate}, headers=auth_headers)
    assert response.status_code == 422
    assert "template" in response.json()["detail"].lower()


def test_production_hides_error_detail(client, auth_headers, monkeypatch):
    monkeypatch.setattr(app_server, "SETTINGS", dataclasses.replace(app_server.SETTINGS, app_env="production"))
    response = client.post("/api/certificates/pdf", json={"template": {}}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["detail"] == "Failed to generate certificate PDF."


def test_save_writes_pdf(client, auth_headers, certificate, tmp_path, monkeypatch):
    monkeypatch.setattr(
        app_server, "SETTINGS", dataclasses.replace(app_server.SETTINGS, certificates_dir=tmp_path / "certs")
    )
    response = client.post("/api/certificates/save", json=payload(certificate), headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["pdfUrl"] == "/uploads/certificates/CERT-2024-0001.pdf"
    saved = tmp_path / "certs" / "CERT-2024-0001.pdf"
    assert saved.read_bytes().startswith(b"%PDF")
    assert body["size"] == saved.stat().st_size


def test_list_fonts_is_public(client):
    body = client.get("/api/list-fonts").json()
    families = {font["family"] for font in body["fonts"]}
    assert {"Cairo", "Amiri", "Pacifico"} <= families
    assert body["count"] == len(body["fonts"])


def test_nan_font_weight_still_renders(client, auth_headers, certificate):
    tpl = {"width": 1200, "height": 900, "placeholders": {"studentName": {"fontWeight": float("nan")}}}
    body = json.dumps(payload(certificate, template=tpl))
    assert "NaN" in body
    response = client.post(
        "/api/certificates/pdf",
        content=body,
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_font_file_route_is_gone(client, auth_headers):
    assert client.get("/api/font-file/Cairo-Regular.ttf", headers=auth_headers).status_code == 404
