import uuid
from pathlib import Path

from sqlalchemy.exc import OperationalError

from conftest import image_bytes, write_image


def _upload(client, name="pic.png", size=(40, 20)):
    resp = client.post(
        "/upload", files={"file": (name, image_bytes(size=size), "image/png")}
    )
    assert resp.status_code == 201
    return resp.json()["image"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": "connected"}


def test_health_reports_db_failure(client, monkeypatch):
    def boom():
        raise OperationalError("SELECT 1", {}, Exception("down"))

    monkeypatch.setattr(client.app.state.store, "ping", boom)

    resp = client.get("/health")
    assert resp.status_code == 500
    assert resp.json()["status"] == "error"


def test_sync_returns_camel_case_summary(client, storage_root):
    write_image(storage_root / "a.png")
    (storage_root / "notes.txt").write_text("x")

    resp = client.post("/sync")

    assert resp.status_code == 200
    assert resp.json() == {
        "totalDbBefore": 0,
        "totalDisk": 1,
        "addedFromDisk": 1,
        "markedMissing": 0,
        "healed": 0,
        "errors": [],
    }


def test_upload_then_sync_finds_no_orphan(client, storage_root):
    image = _upload(client)

    assert image["filename"] == "pic.png"
    assert image["mime_type"] == "image/png"
    assert (image["width"], image["height"]) == (40, 20)
    assert image["is_corrupted"] is False
    assert Path(image["storage_path"]).parent == storage_root
    assert Path(image["storage_path"]).is_file()

    summary = client.post("/sync").json()
    assert summary["totalDbBefore"] == 1
    assert summary["totalDisk"] == 1
    assert summary["addedFromDisk"] == 0


def test_upload_without_file(client):
    resp = client.post("/upload")
    assert resp.status_code == 400
    assert resp.json() == {"error": "No file uploaded"}


def test_upload_of_undecodable_file_is_flagged(client):
    resp = client.post(
        "/upload", files={"file": ("bad.png", b"not a png", "image/png")}
    )
    image = resp.json()["image"]
    assert image["is_corrupted"] is True
    assert image["width"] is None

    summary = client.post("/sync").json()
    assert summary["healed"] == 0


def test_list_and_get_images(client):
    first = _upload(client, "one.png")
    second = _upload(client, "two.png")

    listed = client.get("/images").json()
    assert {img["id"] for img in listed} == {first["id"], second["id"]}

    detail = client.get(f"/images/{first['id']}")
    assert detail.status_code == 200
    assert detail.json()["filename"] == "one.png"


def test_get_unknown_image(client):
    resp = client.get(f"/images/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Image not found"}


def test_crop_creates_tracked_image(client, storage_root):
    source = _upload(client, "pic.png", size=(40, 20))

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": 0.0, "y": 0.0, "width": 0.5, "height": 0.5},
    )

    assert resp.status_code == 201
    image = resp.json()["image"]
    assert image["filename"] == "crop_pic.png"
    assert image["mime_type"] == "image/png"
    assert (image["width"], image["height"]) == (20, 10)
    assert Path(image["storage_path"]).parent == storage_root
    assert Path(image["storage_path"]).name.endswith("_crop_pic.png")

    summary = client.post("/sync").json()
    assert summary["addedFromDisk"] == 0
    assert summary["totalDbBefore"] == 2


def test_crop_region_outside_image(client):
    source = _upload(client)

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": 1.0, "y": 0.0, "width": 0.5, "height": 0.5},
    )

    assert resp.status_code == 400
    assert "error" in resp.json()


def test_crop_rejects_out_of_range_region(client):
    source = _upload(client)

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": -0.1, "y": 0.0, "width": 0.5, "height": 0.5},
    )

    assert resp.status_code == 422


def test_crop_missing_source_file(client):
    source = _upload(client)
    Path(source["storage_path"]).unlink()

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": 0, "y": 0, "width": 1, "height": 1},
    )

    assert resp.status_code == 404
    assert resp.json() == {"error": "File missing on disk"}


def test_crop_undecodable_source(client):
    resp = client.post("/upload", files={"file": ("bad.png", b"junk", "image/png")})
    source = resp.json()["image"]

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": 0, "y": 0, "width": 1, "height": 1},
    )

    assert resp.status_code == 422
    assert resp.json() == {"error": "Source image could not be decoded"}
    assert len(client.get("/images").json()) == 1


def test_media_serves_file_and_reports_missing(client):
    source = _upload(client)

    resp = client.get(f"/media/{source['id']}")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content == Path(source["storage_path"]).read_bytes()

    Path(source["storage_path"]).unlink()
    assert client.get(f"/media/{source['id']}").status_code == 404


def test_sync_flags_and_heals_through_api(client):
    source = _upload(client)
    path = Path(source["storage_path"])
    data = path.read_bytes()

    path.unlink()
    assert client.post("/sync").json()["markedMissing"] == 1
    assert client.get(f"/images/{source['id']}").json()["is_corrupted"] is True

    path.write_bytes(data)
    assert client.post("/sync").json()["healed"] == 1
    assert client.get(f"/images/{source['id']}").json()["is_corrupted"] is False


def test_sync_failure_returns_500_without_counts(client, monkeypatch):
    def boom():
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(client.app.state.store, "list_all", boom)

    resp = client.post("/sync")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Sync failed"}


def test_sync_while_running_is_rejected(client):
    lock = client.app.state.sync_engine._lock
    lock.acquire()
    try:
        resp = client.post("/sync")
    finally:
        lock.release()

    assert resp.status_code == 409
    assert resp.json() == {"error": "Sync already in progress"}


def test_upload_store_failure_returns_json_500(client, storage_root, monkeypatch):
    def boom(record):
        raise OperationalError("INSERT", {}, Exception("connection refused"))

    monkeypatch.setattr(client.app.state.store, "insert", boom)

    resp = client.post(
        "/upload", files={"file": ("pic.png", image_bytes(), "image/png")}
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Upload failed"}
    assert list(storage_root.iterdir()) == []


def test_crop_store_failure_returns_json_500(client, storage_root, monkeypatch):
    source = _upload(client)

    def boom(record):
        raise OperationalError("INSERT", {}, Exception("connection refused"))

    monkeypatch.setattr(client.app.state.store, "insert", boom)

    resp = client.post(
        f"/images/{source['id']}/crop",
        json={"x": 0, "y": 0, "width": 1, "height": 1},
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "Crop failed"}
    assert [p.name for p in storage_root.iterdir()] == [Path(source["storage_path"]).name]
