from datetime import timedelta

from drive_api.core.security import create_access_token
from drive_api.repositories.metadata_store import MetadataStore


def _upload(client, blobs, headers, name, folder_id=None, size=100):
    init = client.post("/api/files/init", json={"name": name, "folderId": folder_id}, headers=headers)
    assert init.status_code == 200, init.text
    ticket = init.json()
    blobs.put(ticket["storageKey"], size, "application/pdf")

    complete = client.post(
        "/api/files/complete",
        json={
            "fileId": ticket["fileId"],
            "name": name,
            "mimeType": "application/pdf",
            "sizeBytes": size,
            "folderId": folder_id,
            "storageKey": ticket["storageKey"],
        },
        headers=headers,
    )
    assert complete.status_code == 201, complete.text
    return complete.json()


def _names(listing, kind):
    return [item["name"] for item in listing["children"][kind]]


#-----------Auth-------------

def test_missing_or_bad_token_is_unauthorized(client):
    missing = client.get("/api/folders/root")
    assert missing.status_code == 401
    assert missing.json() == {"error": "Missing token"}

    bad = client.get("/api/folders/root", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    assert "error" in bad.json()


def test_expired_token_is_unauthorized(client):
    token = create_access_token("alice", "alice@example.com", expires_delta=timedelta(minutes=-5))

    response = client.get("/api/trash", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


#-----------Validation-------------

def test_unknown_and_missing_fields_are_rejected(client, auth_headers):
    headers = auth_headers("alice")

    extra = client.post("/api/folders", json={"name": "Docs", "colour": "red"}, headers=headers)
    assert extra.status_code == 400
    assert "error" in extra.json()

    missing = client.post("/api/files/complete", json={"fileId": "x"}, headers=headers)
    assert missing.status_code == 400

    bad_type = client.post("/api/trash/restore", json={"id": "x", "type": "album"}, headers=headers)
    assert bad_type.status_code == 400


def test_search_requires_a_query(client, auth_headers):
    response = client.get("/api/search", headers=auth_headers("alice"))

    assert response.status_code == 400


#-----------Scenarios-------------

def test_folder_upload_trash_and_restore_scenario(client, blobs, auth_headers):
    headers = auth_headers("user-a")

    docs = client.post("/api/folders", json={"name": "Docs", "parentId": None}, headers=headers)
    assert docs.status_code == 201
    docs_id = docs.json()["id"]

    uploaded = _upload(client, blobs, headers, "a.pdf", folder_id=docs_id)
    assert uploaded["folder_id"] == docs_id

    root = client.get("/api/folders/root", headers=headers).json()
    assert root["folder"] is None
    assert _names(root, "folders") == ["Docs"]

    listing = client.get(f"/api/folders/{docs_id}", headers=headers).json()
    assert listing["folder"]["id"] == docs_id
    assert _names(listing, "files") == ["a.pdf"]

    deleted = client.delete(f"/api/files/{uploaded['id']}", headers=headers)
    assert deleted.json() == {"success": True}

    trash = client.get("/api/trash", headers=headers).json()
    assert trash["folder"] == {"name": "Trash"}
    assert _names(trash, "files") == ["a.pdf"]
    assert _names(client.get(f"/api/folders/{docs_id}", headers=headers).json(), "files") == []

    restored = client.post("/api/trash/restore", json={"id": uploaded["id"], "type": "file"}, headers=headers)
    assert restored.status_code == 200

    assert _names(client.get(f"/api/folders/{docs_id}", headers=headers).json(), "files") == ["a.pdf"]
    assert _names(client.get("/api/trash", headers=headers).json(), "files") == []


def test_public_share_scenario(client, blobs, auth_headers):
    headers = auth_headers("user-a")
    x = _upload(client, blobs, headers, "x.pdf")

    first = client.post(f"/api/files/{x['id']}/share", headers=headers).json()
    second = client.post(f"/api/files/{x['id']}/share", headers=headers).json()
    assert first == second
    assert first["isPublic"] is True

    # anonymous
    shared = client.get(f"/api/shared/{first['shareId']}")
    assert shared.status_code == 200
    body = shared.json()
    assert body["id"] == x["id"]
    assert body["name"] == "x.pdf"
    assert body["url"] == f"https://blobs.test/{x['storage_key']}?expires_in=3600"


def test_unknown_or_targeted_share_ids_do_not_resolve(client, blobs, auth_headers):
    headers = auth_headers("user-a")
    y = _upload(client, blobs, headers, "y.pdf")
    targeted = client.post(f"/api/files/{y['id']}/share-email", json={"email": "b@x.com"}, headers=headers).json()

    for share_id in ("does-not-exist", targeted["id"]):
        response = client.get(f"/api/shared/{share_id}")
        assert response.status_code == 404
        assert response.json() == {"error": "Link expired or invalid"}


def test_shared_with_me_scenario(client, blobs, auth_headers):
    owner = auth_headers("user-a")
    y = _upload(client, blobs, owner, "y.pdf")

    share = client.post(f"/api/files/{y['id']}/share-email", json={"email": "b@x.com"}, headers=owner)
    assert share.status_code == 201
    assert share.json()["grantee_email"] == "b@x.com"

    duplicate = client.post(f"/api/files/{y['id']}/share-email", json={"email": "b@x.com"}, headers=owner)
    assert duplicate.status_code == 400

    for_b = client.get("/api/shared-with-me", headers=auth_headers("user-b", "b@x.com")).json()
    assert for_b["folder"] == {"name": "Shared with me"}
    assert _names(for_b, "files") == ["y.pdf"]

    for_c = client.get("/api/shared-with-me", headers=auth_headers("user-c", "c@x.com")).json()
    assert _names(for_c, "files") == []


#-----------Files-------------

def test_download_and_search_are_owner_scoped(client, blobs, auth_headers):
    alice = auth_headers("alice")
    bob = auth_headers("bob")
    report = _upload(client, blobs, alice, "Annual Report.pdf")
    _upload(client, blobs, bob, "report.pdf")

    download = client.get(f"/api/files/{report['id']}", headers=alice)
    assert download.json() == {
        "url": f"https://blobs.test/{report['storage_key']}?expires_in=60",
        "name": "Annual Report.pdf",
    }
    assert client.get(f"/api/files/{report['id']}", headers=bob).status_code == 404

    results = client.get("/api/search", params={"q": "REPORT"}, headers=alice).json()
    assert [f["id"] for f in results] == [report["id"]]


def test_complete_upload_twice_is_rejected(client, blobs, auth_headers):
    headers = auth_headers("alice")
    init = client.post("/api/files/init", json={"name": "a.pdf"}, headers=headers).json()
    payload = {
        "fileId": init["fileId"],
        "name": "a.pdf",
        "mimeType": "application/pdf",
        "sizeBytes": 3,
        "storageKey": init["storageKey"],
    }

    assert client.post("/api/files/complete", json=payload, headers=headers).status_code == 201
    again = client.post("/api/files/complete", json=payload, headers=headers)
    assert again.status_code == 400
    assert again.json() == {"error": "Upload already completed"}


def test_rename_and_move_file(client, blobs, auth_headers):
    headers = auth_headers("alice")
    target = client.post("/api/folders", json={"name": "Target"}, headers=headers).json()
    f = _upload(client, blobs, headers, "draft.pdf")

    moved = client.patch(
        f"/api/files/{f['id']}", json={"name": "final.pdf", "folderId": target["id"]}, headers=headers
    )
    assert moved.status_code == 200
    assert moved.json()["name"] == "final.pdf"
    assert moved.json()["storage_key"] == f["storage_key"]

    listing = client.get(f"/api/folders/{target['id']}", headers=headers).json()
    assert _names(listing, "files") == ["final.pdf"]


def test_folder_cannot_move_under_itself(client, auth_headers):
    headers = auth_headers("alice")
    outer = client.post("/api/folders", json={"name": "Outer"}, headers=headers).json()
    inner = client.post("/api/folders", json={"name": "Inner", "parentId": outer["id"]}, headers=headers).json()

    response = client.patch(f"/api/folders/{outer['id']}", json={"parentId": inner["id"]}, headers=headers)

    assert response.status_code == 400


#-----------Trash-------------

def test_permanent_delete_purges_storage(client, blobs, auth_headers):
    headers = auth_headers("alice")
    f = _upload(client, blobs, headers, "gone.pdf")
    client.delete(f"/api/files/{f['id']}", headers=headers)

    response = client.delete(f"/api/trash/{f['id']}", params={"type": "file"}, headers=headers)

    assert response.json() == {"success": True}
    assert blobs.purged == [f["storage_key"]]
    assert _names(client.get("/api/trash", headers=headers).json(), "files") == []


def test_failed_purge_is_reported_and_item_stays_in_trash(client, blobs, auth_headers):
    headers = auth_headers("alice")
    f = _upload(client, blobs, headers, "stuck.pdf")
    client.delete(f"/api/files/{f['id']}", headers=headers)
    blobs.failing_keys.add(f["storage_key"])

    response = client.delete(f"/api/trash/{f['id']}", params={"type": "file"}, headers=headers)

    assert response.status_code == 500
    assert "simulated outage" in response.json()["error"]
    assert _names(client.get("/api/trash", headers=headers).json(), "files") == ["stuck.pdf"]


def test_permanent_delete_requires_type(client, auth_headers):
    response = client.delete("/api/trash/some-id", headers=auth_headers("alice"))

    assert response.status_code == 400


async def test_files_in_trashed_folder_stop_resolving(client, blobs, auth_headers, session_maker):
    owner = auth_headers("user-a")
    docs = client.post("/api/folders", json={"name": "Docs"}, headers=owner).json()
    secret = _upload(client, blobs, owner, "secret.pdf", folder_id=docs["id"])
    public = client.post(f"/api/files/{secret['id']}/share", headers=owner).json()
    client.post(f"/api/files/{secret['id']}/share-email", json={"email": "b@x.com"}, headers=owner)

    # folders are trashed through the store; the HTTP surface only trashes files
    async with session_maker() as session:
        await MetadataStore(session).soft_delete(docs["id"], "folder", "user-a")

    assert client.get(f"/api/shared/{public['shareId']}").status_code == 404
    assert client.get(f"/api/files/{secret['id']}", headers=owner).status_code == 404
    assert client.post(f"/api/files/{secret['id']}/share", headers=owner).status_code == 404
    for_b = client.get("/api/shared-with-me", headers=auth_headers("user-b", "b@x.com")).json()
    assert _names(for_b, "files") == []


def test_complete_upload_requires_mime_type(client, auth_headers):
    headers = auth_headers("alice")
    init = client.post("/api/files/init", json={"name": "a.pdf"}, headers=headers).json()

    response = client.post(
        "/api/files/complete",
        json={"fileId": init["fileId"], "name": "a.pdf", "sizeBytes": 3, "storageKey": init["storageKey"]},
        headers=headers,
    )

    assert response.status_code == 400
    assert "mimeType" in response.json()["error"]


def test_nul_in_name_is_reported(client, auth_headers):
    response = client.post("/api/folders", json={"name": "bad\x00name"}, headers=auth_headers("alice"))

    assert response.status_code == 400
    assert "'/' or NUL" in response.json()["error"]
