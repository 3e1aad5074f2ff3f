from sqlmodel import select

from referral_api.models import ImporterCredential, ProgramOnboarding

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_staging_merges_wizard_steps(client, workspace, auth_headers):
    base = f"/api/workspaces/{workspace.id}/program-onboarding"

    first = client.put(base, json={"name": "Acme Partners", "domain": "refer.acme.com"}, headers=auth_headers)
    second = client.put(base, json={"url": "https://acme.com", "type": "flat", "amount": 1000}, headers=auth_headers)

    assert first.status_code == 200
    assert second.json() == {
        "name": "Acme Partners",
        "domain": "refer.acme.com",
        "url": "https://acme.com",
        "type": "flat",
        "amount": 1000,
    }
    assert client.get(base, headers=auth_headers).json()["amount"] == 1000


def test_discard_staged_onboarding(client, session, workspace, auth_headers, stage_onboarding):
    stage_onboarding()
    base = f"/api/workspaces/{workspace.id}/program-onboarding"

    assert client.delete(base, headers=auth_headers).status_code == 204

    assert session.exec(select(ProgramOnboarding)).first() is None
    resp = client.get(base, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["message"] == "Program onboarding data not found"


def test_logo_upload_is_staged_under_temp_prefix(client, workspace, auth_headers, local_storage):
    resp = client.post(
        f"/api/workspaces/{workspace.id}/program-onboarding/logo",
        files={"file": ("logo.png", PNG_BYTES, "image/png")},
        headers=auth_headers,
    )

    assert resp.status_code == 200
    logo = resp.json()["logo"]
    assert logo.startswith(f"/static/media/tmp/programs/onboarding/{workspace.id}/logo_")
    assert logo.endswith(".png")
    assert (local_storage / logo[len("/static/media/"):]).read_bytes() == PNG_BYTES
    staged = client.get(f"/api/workspaces/{workspace.id}/program-onboarding", headers=auth_headers).json()
    assert staged["logo"] == logo


def test_replacing_logo_deletes_previous_temp_upload(client, workspace, auth_headers, local_storage):
    url = f"/api/workspaces/{workspace.id}/program-onboarding/logo"
    first = client.post(url, files={"file": ("a.png", PNG_BYTES, "image/png")}, headers=auth_headers).json()["logo"]
    client.post(url, files={"file": ("b.png", PNG_BYTES, "image/png")}, headers=auth_headers)

    assert not (local_storage / first[len("/static/media/"):]).exists()


def test_logo_upload_rejects_unsupported_type(client, workspace, auth_headers):
    resp = client.post(
        f"/api/workspaces/{workspace.id}/program-onboarding/logo",
        files={"file": ("logo.gif", b"GIF89a", "image/gif")},
        headers=auth_headers,
    )

    assert resp.status_code == 422
    assert resp.json()["error"]["technical_message"] == "Logo must be a PNG, JPEG, WebP or SVG image"


def test_logo_upload_rejects_oversized_file(client, workspace, auth_headers):
    too_big = b"\x00" * (2 * 1024 * 1024 + 1)

    resp = client.post(
        f"/api/workspaces/{workspace.id}/program-onboarding/logo",
        files={"file": ("logo.png", too_big, "image/png")},
        headers=auth_headers,
    )

    assert resp.status_code == 422


def test_rewardful_token_is_stored(client, session, workspace, auth_headers):
    resp = client.put(
        f"/api/workspaces/{workspace.id}/program-onboarding/rewardful",
        json={"apiToken": "rwf_live_secret"},
        headers=auth_headers,
    )

    assert resp.status_code == 204
    row = session.exec(select(ImporterCredential)).one()
    assert row.provider == "rewardful"
    assert row.workspace_id == workspace.id
    assert "rwf_live_secret" in row.data_json


def test_staging_requires_membership(client, other_workspace, auth_headers):
    resp = client.put(
        f"/api/workspaces/{other_workspace.id}/program-onboarding",
        json={"name": "Nope"},
        headers=auth_headers,
    )

    assert resp.status_code == 404
