import re

from google.api_core import exceptions as gcp_exceptions

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"


def _upload(client, name="My Report.PDF", content=b"%PDF-1.4 teste", content_type="application/pdf"):
    return client.post("/api/v1/files", files={"file": (name, content, content_type)})


def test_upload_and_download_file(client):
    response = _upload(client)
    assert response.status_code == 201
    body = response.json()
    assert re.fullmatch(UUID_PATTERN + r"-myReport\.PDF", body["fileKey"])
    assert body["metadata"]["name"] == "My Report.PDF"

    download = client.get(f"/api/v1/files/{body['fileKey']}")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 teste"
    assert download.headers["content-type"] == "application/pdf"
    assert "My%20Report.PDF" in download.headers["content-disposition"]


def test_file_metadata_does_not_open_stream(client, bucket):
    key = _upload(client).json()["fileKey"]

    response = client.get(f"/api/v1/files/{key}/metadata")
    assert response.status_code == 200
    assert response.json()["metadata"]["name"] == "My Report.PDF"
    assert bucket.opened == []


def test_download_unknown_file_returns_404(client):
    response = client.get("/api/v1/files/nonexistent-key")

    assert response.status_code == 404
    assert response.json()["detail"] == "No such file: nonexistent-key."


def test_metadata_unknown_file_returns_404(client):
    response = client.get("/api/v1/files/nonexistent-key/metadata")

    assert response.status_code == 404


def test_upload_failure_returns_502(client, bucket):
    bucket.upload_error = gcp_exceptions.ServiceUnavailable("indisponivel")

    response = _upload(client)

    assert response.status_code == 502


def test_upload_url_endpoint(client, bucket):
    response = client.post(
        "/api/v1/files/upload-url",
        json={"filename": "Foto Perfil.png", "content_type": "image/png"},
    )

    assert response.status_code == 200
    body = response.json()
    assert re.fullmatch(UUID_PATTERN + r"-fotoPerfil\.png", body["key"])
    assert body["url"].startswith("https://storage.googleapis.com/")
    assert body["expires_at"]
    assert bucket.signed[-1]["method"] == "PUT"
    assert bucket.signed[-1]["content_type"] == "image/png"


def test_upload_url_requires_filename(client):
    response = client.post("/api/v1/files/upload-url", json={"filename": ""})

    assert response.status_code == 422


def test_download_url_endpoint(client, bucket):
    response = client.get("/api/v1/files/abc-file.txt/download-url")

    assert response.status_code == 200
    assert response.json()["key"] == "abc-file.txt"
    assert bucket.signed[-1]["method"] == "GET"


def test_upload_forwards_file_size(client, bucket):
    _upload(client, content=b"0123456789")

    assert bucket.upload_calls[-1]["size"] == 10
    assert bucket.upload_calls[-1]["content_type"] == "application/pdf"
