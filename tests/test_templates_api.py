"""Template catalog, n8n import, contact form and app plumbing."""

import json

import httpx
import pytest
from sqlmodel import select

from postflow.infrastructure.n8n_client import N8nClient
from postflow.models.backoffice import ContactSubmission
from postflow.services.template_catalog import template_name


def test_template_name():
    assert template_name("social-post-automation") == "Social Post Automation"
    assert template_name("crm_sync__v2") == "Crm Sync - V2"


class TestTemplates:
    async def test_list_and_search(self, client, owner, test_settings):
        headers, _ = owner
        with open(f"{test_settings.templates_dir}/lead-capture.json", "w") as fh:
            json.dump({"name": "Lead capture", "nodes": []}, fh)

        everything = (await client.get("/templates", headers=headers)).json()
        found = (await client.get("/templates", params={"search": "social"}, headers=headers)).json()

        assert [t["id"] for t in everything] == ["lead-capture", "social-post-automation"]
        assert found == [{"id": "social-post-automation", "name": "Social Post Automation"}]

    async def test_get(self, client, owner):
        headers, _ = owner

        resp = await client.get("/templates/social-post-automation", headers=headers)

        assert resp.status_code == 200
        assert resp.json()["name"] == "Social Post Automation"

    async def test_download(self, client, owner):
        headers, _ = owner

        resp = await client.get("/templates/social-post-automation/download", headers=headers)

        assert resp.status_code == 200
        assert 'filename="social-post-automation.json"' in resp.headers["content-disposition"]
        assert json.loads(resp.content)["nodes"][0]["name"] == "Webhook"

    async def test_missing(self, client, owner):
        headers, _ = owner

        resp = await client.get("/templates/nope", headers=headers)

        assert resp.status_code == 404
        assert resp.json() == {"detail": "Template not found"}

    async def test_traversal_rejected(self, client, owner):
        headers, _ = owner

        resp = await client.get("/templates/a..b", headers=headers)

        assert resp.status_code == 400

    async def test_requires_login(self, client):
        assert (await client.get("/templates")).status_code == 401


class TestN8nImport:
    @pytest.fixture
    def n8n_requests(self, app):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/rest/login":
                return httpx.Response(200, headers={"set-cookie": "n8n-auth=abc; Path=/"})
            return httpx.Response(200, json={"data": {"id": "wf-7", "name": "Social Post Automation"}})

        app.state.n8n_client = N8nClient(
            "http://n8n.test", "ops@example.com", "pw", transport=httpx.MockTransport(handler)
        )
        return seen

    async def test_import(self, client, owner, n8n_requests):
        headers, _ = owner

        resp = await client.post("/n8n/import/social-post-automation", headers=headers)

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Workflow imported successfully to n8n",
            "workflow": {"id": "wf-7", "name": "Social Post Automation", "n8nUrl": "http://n8n.test/workflow/wf-7"},
        }
        assert json.loads(n8n_requests[-1].content)["name"] == "Social Post Automation"

    async def test_unknown_template_never_reaches_n8n(self, client, owner, n8n_requests):
        headers, _ = owner

        resp = await client.post("/n8n/import/nope", headers=headers)

        assert resp.status_code == 404
        assert n8n_requests == []

    async def test_connection(self, client, owner, n8n_requests):
        headers, _ = owner

        resp = await client.get("/n8n/test", headers=headers)

        assert resp.status_code == 200
        assert resp.json()["n8nUrl"] == "http://n8n.test"

    async def test_unconfigured_credentials(self, client, owner):
        headers, _ = owner

        resp = await client.get("/n8n/test", headers=headers)

        assert resp.status_code == 401
        assert "not configured" in resp.json()["detail"]


class RecordingMailer:
    enabled = True

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, **kwargs):
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append(kwargs)
        return True


class TestContact:
    PAYLOAD = {"name": "Sam", "email": "Sam@Example.com", "subject": "Pricing", "message": "Hi <there>\nthanks"}

    async def test_submission_is_stored_and_mailed(self, client, app, db_session):
        mailer = RecordingMailer()
        app.state.mailer = mailer

        resp = await client.post("/contact", json=self.PAYLOAD)

        assert resp.status_code == 200
        assert resp.json() == {"message": "Thank you for contacting us! We'll get back to you soon."}
        rows = (await db_session.execute(select(ContactSubmission))).scalars().all()
        assert [(r.email, r.subject) for r in rows] == [("sam@example.com", "Pricing")]
        assert mailer.sent[0]["to_email"] == "support@example.com"
        assert mailer.sent[0]["reply_to"] == "sam@example.com"
        assert "&lt;there&gt;<br>thanks" in mailer.sent[0]["html"]

    async def test_mail_failure_still_succeeds(self, client, app):
        app.state.mailer = RecordingMailer(fail=True)

        resp = await client.post("/contact", json=self.PAYLOAD)

        assert resp.status_code == 200

    async def test_blank_fields(self, client):
        resp = await client.post("/contact", json={**self.PAYLOAD, "subject": "   "})

        assert resp.status_code == 400

    async def test_info(self, client):
        body = (await client.get("/contact/info")).json()

        assert body["email"] == "support@example.com"
        assert len(body["supportFeatures"]) == 3


class TestPlumbing:
    async def test_health(self, client):
        resp = await client.get("/health")

        assert resp.json() == {"status": "ok"}
        assert resp.headers["x-request-id"]

    async def test_request_id_is_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert resp.headers["x-request-id"] == "abc-123"
