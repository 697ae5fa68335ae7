from __future__ import annotations


def test_corrections_and_master_dictionary_routes(
    client, user_headers, created_project, dictionary_session, fake_response
):
    project_id = created_project["id"]
    corrections = {
        "corrections": [
            {"originalName": "Ahab", "correctedPronunciation": "AY-hab", "ipaPronunciation": "eɪhæb"}
        ]
    }

    saved = client.put(
        f"/api/projects/{project_id}/pronunciation", json=corrections, headers=user_headers
    )
    assert saved.json()["corrections"][0]["originalName"] == "Ahab"
    loaded = client.get(f"/api/projects/{project_id}/pronunciation", headers=user_headers)
    assert loaded.json()["corrections"] == saved.json()["corrections"]

    dictionary_session.queue(
        fake_response(200, [{"id": "d1", "name": "studio_master_dictionary", "latest_version_id": "v1"}]),
        fake_response(200, {"version_id": "v2"}),
    )
    synced = client.post(f"/api/projects/{project_id}/pronunciation/sync", headers=user_headers)
    assert synced.json()["apiAccessible"] is True
    assert synced.json()["dictionaryFileName"] == f"u1/{project_id}/studio_master_dictionary.pls"

    rules = client.get(
        "/api/master-dictionary", params={"projectId": project_id}, headers=user_headers
    ).json()
    assert rules["rules"][0]["grapheme"] == "Ahab"

    dictionary_session.queue(fake_response(200, {}))
    removed = client.delete(
        "/api/master-dictionary",
        params={"projectId": project_id, "grapheme": "Ahab"},
        headers=user_headers,
    )
    assert removed.json() == {"success": True, "removed": 1}


def test_master_dictionary_entries_can_be_posted(
    client, user_headers, created_project, dictionary_session, fake_response
):
    dictionary_session.queue(fake_response(200, []))

    response = client.post(
        "/api/master-dictionary",
        json={
            "projectId": created_project["id"],
            "projectName": "Whale",
            "bookName": "Moby Dick",
            "pronunciationCorrections": [{"originalName": "Pip", "ipaPronunciation": "pɪp"}],
        },
        headers=user_headers,
    )

    assert response.json() == {"success": True, "count": 1}


def test_voices_are_listed(client, user_headers, dictionary_session, fake_response):
    dictionary_session.queue(fake_response(200, {"voices": [{"voice_id": "v1", "name": "Rachel"}]}))

    response = client.get("/api/voices", headers=user_headers)

    assert response.json() == {"voices": [{"voice_id": "v1", "name": "Rachel"}]}


def test_remote_master_dictionary_route(client, user_headers, dictionary_session, fake_response):
    listing = [{"id": "d1", "name": "studio_master_dictionary", "latest_version_id": "v3"}]
    dictionary_session.queue(
        fake_response(200, listing),
        fake_response(200, listing),
        fake_response(200, {"rules": []}),
    )

    response = client.get("/api/master-dictionary/remote", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["versionId"] == "v3"
    assert response.json()["apiAccessible"] is True
