"""Image upload routes.

Invariants:
    - Only admins may upload or delete images
    - Only jpeg, png, gif and webp files are stored
    - Deletion never leaves the upload directory
"""

import pytest

from flame_kitchen.api import upload

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def upload_root(monkeypatch, tmp_path):
    monkeypatch.setattr(upload.settings, "upload_directory", str(tmp_path))
    return tmp_path


async def test_upload_menu_image(client, admin, headers, upload_root):
    res = await client.post(
        "/api/upload/menu-image",
        files={"image": ("Dish.PNG", PNG_BYTES, "image/png")},
        headers=headers(admin),
    )

    assert res.status_code == 200
    body = res.json()
    assert body["filename"].startswith("image-")
    assert body["filename"].endswith(".png")
    assert body["url"] == f"/uploads/{body['filename']}"
    assert (upload_root / body["filename"]).read_bytes() == PNG_BYTES


async def test_upload_logo(client, admin, headers, upload_root):
    res = await client.post(
        "/api/upload/logo",
        files={"logo": ("logo", b"GIF89a", "image/gif")},
        headers=headers(admin),
    )

    assert res.status_code == 200
    assert res.json()["message"] == "Logo uploaded successfully"
    assert res.json()["filename"].startswith("logo-")
    assert res.json()["filename"].endswith(".gif")


async def test_upload_extension_follows_content_type(client, admin, headers, upload_root):
    res = await client.post(
        "/api/upload/menu-image",
        files={"image": ("menu.html", b"<script>alert(1)</script>", "image/png")},
        headers=headers(admin),
    )

    assert res.status_code == 200
    filename = res.json()["filename"]
    assert filename.endswith(".png")
    assert [p.suffix for p in upload_root.iterdir()] == [".png"]


async def test_upload_rejects_non_images(client, admin, headers, upload_root):
    res = await client.post(
        "/api/upload/menu-image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=headers(admin),
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Only image files are allowed (jpeg, png, gif, webp)"}
    assert list(upload_root.iterdir()) == []


async def test_upload_requires_file(client, admin, headers, upload_root):
    res = await client.post("/api/upload/menu-image", headers=headers(admin))

    assert res.status_code == 400
    assert res.json() == {"error": "No file uploaded"}


async def test_upload_too_large(client, admin, headers, upload_root, monkeypatch):
    monkeypatch.setattr(upload.settings, "max_upload_size_mb", 0)

    res = await client.post(
        "/api/upload/menu-image",
        files={"image": ("big.png", PNG_BYTES, "image/png")},
        headers=headers(admin),
    )

    assert res.status_code == 400
    assert res.json() == {"error": "File too large. Maximum size is 0MB"}
    assert list(upload_root.iterdir()) == []


async def test_upload_admin_only(client, cashier, headers, upload_root):
    res = await client.post(
        "/api/upload/menu-image",
        files={"image": ("dish.png", PNG_BYTES, "image/png")},
        headers=headers(cashier),
    )

    assert res.status_code == 403


async def test_delete_menu_image(client, admin, headers, upload_root):
    (upload_root / "image-abc.png").write_bytes(PNG_BYTES)

    deleted = await client.delete("/api/upload/menu-image/image-abc.png", headers=headers(admin))
    missing = await client.delete("/api/upload/menu-image/image-abc.png", headers=headers(admin))

    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Image deleted successfully"}
    assert not (upload_root / "image-abc.png").exists()
    assert missing.status_code == 404


async def test_delete_rejects_hidden_files(client, admin, headers, upload_root):
    (upload_root / ".secret").write_text("x")

    hidden = await client.delete("/api/upload/menu-image/.secret", headers=headers(admin))

    assert hidden.status_code == 400
    assert (upload_root / ".secret").exists()
